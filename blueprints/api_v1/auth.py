"""
Authentication API routes.

Endpoints:
- PUT /api/v1/auth/signup - Register new user and open a session
- PUT /api/v1/auth/login - Login and get tokens
- PUT /api/v1/auth/refresh - Exchange the refresh token for a new session
- DELETE /api/v1/auth/logout - Invalidate the refresh token
- PUT /api/v1/auth/updateEmail - Change email (resets verification)
- PUT /api/v1/auth/updatePassword - Change password
- PUT /api/v1/auth/registerForPushNotifications - Store the device push token
"""
import logging

from flask import g

from extensions import limiter
from api_decorators import get_services, jwt_required
from blueprints.api_v1 import api_v1_bp
from blueprints.api_v1.responses import json_body, require_string, service_failure, success
from services.auth_service import (
    LoginErrorCode,
    RefreshErrorCode,
    SignupErrorCode,
    UpdateEmailErrorCode,
    UpdatePasswordErrorCode,
)
from services.errors import ServiceError

logger = logging.getLogger(__name__)

SIGNUP_STATUSES = {
    SignupErrorCode.ALREADY_TAKEN: (409, 'already_taken'),
    SignupErrorCode.WRONG_FORMAT: (422, 'wrong_format'),
}
LOGIN_STATUSES = {
    LoginErrorCode.WRONG_CREDENTIALS: (409, 'incorrect_credentials'),
}
REFRESH_STATUSES = {
    RefreshErrorCode.TOKEN_EXPIRED: (401, 'token_expired'),
    RefreshErrorCode.TOKEN_IS_WRONG: (409, 'wrong_access_token'),
}
UPDATE_EMAIL_STATUSES = {
    UpdateEmailErrorCode.ALREADY_TAKEN: (409, 'already_taken'),
    UpdateEmailErrorCode.WRONG_FORMAT: (422, 'wrong_format'),
}
UPDATE_PASSWORD_STATUSES = {
    UpdatePasswordErrorCode.OLD_PASSWORD_IS_WRONG: (409, 'incorrect_credentials'),
    UpdatePasswordErrorCode.WRONG_FORMAT: (422, 'wrong_format'),
}


def _credentials(data):
    return require_string(data, 'email').strip().lower(), require_string(data, 'password')


@api_v1_bp.route('/auth/signup', methods=['PUT'])
@limiter.limit("5 per minute")
def api_signup():
    """Register a new user account.

    Request body:
        {
            "email": "user@example.com",
            "password": "Securepassword1"
        }

    Returns:
        {"ok": true, "value": {"id": "...", "accessToken": "...", "refreshToken": "..."}}
    """
    email, password = _credentials(json_body())
    try:
        session = get_services().auth_service.signup(email, password)
    except ServiceError as e:
        return service_failure(e, SIGNUP_STATUSES)
    return success(session.to_dict())


@api_v1_bp.route('/auth/login', methods=['PUT'])
@limiter.limit("10 per minute")
def api_login():
    """Login and get access/refresh tokens.

    Request body:
        {
            "email": "user@example.com",
            "password": "Securepassword1"
        }

    Returns:
        {"ok": true, "value": {"id": "...", "accessToken": "...", "refreshToken": "..."}}
    """
    email, password = _credentials(json_body())
    try:
        session = get_services().auth_service.login(email, password)
    except ServiceError as e:
        return service_failure(e, LOGIN_STATUSES)
    return success(session.to_dict())


@api_v1_bp.route('/auth/refresh', methods=['PUT'])
def api_refresh():
    """Exchange the current refresh token for a new session.

    Request body:
        {"refreshToken": "..."}
    """
    refresh_token = require_string(json_body(), 'refreshToken')
    try:
        session = get_services().auth_service.refresh(refresh_token)
    except ServiceError as e:
        return service_failure(e, REFRESH_STATUSES)
    return success(session.to_dict())


@api_v1_bp.route('/auth/logout', methods=['DELETE'])
@jwt_required
def api_logout():
    """Invalidate the current refresh token."""
    try:
        get_services().auth_service.logout(g.current_user_id)
    except ServiceError as e:
        return service_failure(e, {})
    return success()


@api_v1_bp.route('/auth/updateEmail', methods=['PUT'])
@jwt_required
def api_update_email():
    """Change the account email.

    Request body:
        {"email": "new@example.com"}
    """
    email = require_string(json_body(), 'email').strip().lower()
    try:
        session = get_services().auth_service.update_email(email, g.current_user_id)
    except ServiceError as e:
        return service_failure(e, UPDATE_EMAIL_STATUSES)
    return success(session.to_dict())


@api_v1_bp.route('/auth/updatePassword', methods=['PUT'])
@jwt_required
def api_update_password():
    """Change the account password.

    Request body:
        {"oldPassword": "...", "newPassword": "..."}
    """
    data = json_body()
    old_password = require_string(data, 'oldPassword')
    new_password = require_string(data, 'newPassword')
    try:
        session = get_services().auth_service.update_password(
            old_password, new_password, g.current_user_id
        )
    except ServiceError as e:
        return service_failure(e, UPDATE_PASSWORD_STATUSES)
    return success(session.to_dict())


@api_v1_bp.route('/auth/registerForPushNotifications', methods=['PUT'])
@jwt_required
def api_register_for_push_notifications():
    """Store the device push token for the current user.

    Request body:
        {"token": "..."}
    """
    token = require_string(json_body(), 'token')
    try:
        get_services().auth_service.register_for_push_notifications(token, g.current_user_id)
    except ServiceError as e:
        return service_failure(e, {})
    return success()
