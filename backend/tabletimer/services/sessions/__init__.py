"""Session domain services: store, turns, reconciliation, lobby, broadcast.

This package contains the synchronization engine. HTTP routes and socket
handlers import from here, keeping transport concerns separated from the
session state machine and its merge rules.
"""
