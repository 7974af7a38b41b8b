from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the table timer session server!'})

@main.route('/health')
def health():
    # Used by uptime monitors
    return jsonify({
        'status': 'ok',
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'activeSessions': len(current_app.extensions['session_store']),
    })
