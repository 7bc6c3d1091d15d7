from functools import wraps

from flask import jsonify, session


def admin_required(f):
    """Decorator for admin JSON endpoints: 401 unless an admin is signed in"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if 'admin_id' not in session:
            return jsonify({'error': 'Authentication required'}), 401
        return f(*args, **kwargs)
    return decorated_function
