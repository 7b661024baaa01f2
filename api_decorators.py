"""
JWT authentication decorators for the ledger API.
"""
from functools import wraps

from flask import request, jsonify, g, current_app

from services.jwt_service import JwtError, JwtErrorCode


def _unauthorized(code, description, status):
    error = {'code': code}
    if description:
        error['description'] = description
    return jsonify({'ok': False, 'error': error}), status


def get_services():
    """Services wired for the current app (see app.create_app)."""
    return current_app.extensions['ledger']


def jwt_required(f):
    """Decorator requiring valid JWT access token.

    Sets g.current_user_id from the token subject.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        auth_header = request.headers.get('Authorization', '')

        if not auth_header.startswith('Bearer '):
            return _unauthorized('bad_request', 'Missing or invalid Authorization header', 400)

        token = auth_header[len('Bearer '):].strip()
        services = get_services()

        try:
            user_id = services.jwt_service.get_access_token_subject(token)
        except JwtError as e:
            if e.code == JwtErrorCode.TOKEN_EXPIRED:
                return _unauthorized('token_expired', str(e), 401)
            if e.code == JwtErrorCode.TOKEN_INVALID:
                return _unauthorized('wrong_access_token', str(e), 422)
            return _unauthorized('internal', None, 500)

        # Verify user still has credentials
        if not services.auth_repository.is_user_exists(user_id):
            return _unauthorized('wrong_access_token', 'Unknown token subject', 422)

        g.current_user_id = user_id
        return f(*args, **kwargs)
    return decorated
