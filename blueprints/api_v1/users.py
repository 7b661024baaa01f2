"""
Users and profile API routes.

Endpoints:
- GET /api/v1/users/get?ids=a,b - Public profiles by id
- GET /api/v1/users/search?query=... - Profiles by display name prefix
- GET /api/v1/profile/getInfo - Current user's profile
- PUT /api/v1/profile/setDisplayName - Change display name
"""
from flask import g, request

from api_decorators import get_services, jwt_required
from blueprints.api_v1 import api_v1_bp
from blueprints.api_v1.responses import (
    RequestError,
    json_body,
    list_arg,
    service_failure,
    success,
)
from services.errors import ServiceError
from services.users_service import GetProfileErrorCode, SetDisplayNameErrorCode

GET_PROFILE_STATUSES = {
    GetProfileErrorCode.NOT_FOUND: (404, 'no_such_user'),
}
SET_DISPLAY_NAME_STATUSES = {
    SetDisplayNameErrorCode.WRONG_FORMAT: (422, 'wrong_format'),
    SetDisplayNameErrorCode.NOT_FOUND: (404, 'no_such_user'),
}


@api_v1_bp.route('/users/get', methods=['GET'])
@jwt_required
def api_get_users():
    ids = list_arg('ids')
    try:
        users = get_services().users_service.get_users(ids, g.current_user_id)
    except ServiceError as e:
        return service_failure(e, {})
    return success({'users': [user.to_dict() for user in users]})


@api_v1_bp.route('/users/search', methods=['GET'])
@jwt_required
def api_search_users():
    query = request.args.get('query', '').strip()
    if not query:
        return success({'users': []})
    try:
        users = get_services().users_service.search_users(query, g.current_user_id)
    except ServiceError as e:
        return service_failure(e, {})
    return success({'users': [user.to_dict() for user in users]})


@api_v1_bp.route('/profile/getInfo', methods=['GET'])
@jwt_required
def api_get_profile():
    """Get current user profile.

    Returns:
        {"ok": true, "value": {"user": {...}, "email": "...", "emailVerified": false}}
    """
    try:
        profile = get_services().users_service.get_profile(g.current_user_id)
    except ServiceError as e:
        return service_failure(e, GET_PROFILE_STATUSES)
    return success(profile)


@api_v1_bp.route('/profile/setDisplayName', methods=['PUT'])
@jwt_required
def api_set_display_name():
    """Request body: {"displayName": "New Name"}"""
    name = json_body().get('displayName')
    if not isinstance(name, str):
        raise RequestError('displayName is required')
    try:
        get_services().users_service.set_display_name(name, g.current_user_id)
    except ServiceError as e:
        return service_failure(e, SET_DISPLAY_NAME_STATUSES)
    return success()
