"""
Friends API routes.

Endpoints:
- POST /api/v1/friends/sendRequest - Send a friend request to a user
- POST /api/v1/friends/acceptRequest - Accept a request the user sent to me
- POST /api/v1/friends/rejectRequest - Reject a request the user sent to me
- POST /api/v1/friends/rollbackRequest - Withdraw my request to the user
- POST /api/v1/friends/unfriend - Remove a friendship
- GET /api/v1/friends/get?statuses=friends,subscriber,subscription - Related users by status
"""
from flask import g

from api_decorators import get_services, jwt_required
from blueprints.api_v1 import api_v1_bp
from blueprints.api_v1.responses import (
    RequestError,
    json_body,
    list_arg,
    require_string,
    service_failure,
    success,
)
from repositories.friends_repository import FriendStatus
from services.errors import ServiceError
from services.friends_service import (
    AcceptFriendRequestErrorCode,
    RejectFriendRequestErrorCode,
    RollbackFriendRequestErrorCode,
    SendFriendRequestErrorCode,
    UnfriendErrorCode,
)

SEND_REQUEST_STATUSES = {
    SendFriendRequestErrorCode.NO_SUCH_USER: (404, 'no_such_user'),
    SendFriendRequestErrorCode.ALREADY_SENT: (409, 'already_sent'),
    SendFriendRequestErrorCode.HAVE_INCOMING_REQUEST: (409, 'have_incoming_request'),
    SendFriendRequestErrorCode.ALREADY_FRIENDS: (409, 'already_friends'),
}
ACCEPT_REQUEST_STATUSES = {
    AcceptFriendRequestErrorCode.NO_SUCH_REQUEST: (409, 'no_such_request'),
}
REJECT_REQUEST_STATUSES = {
    RejectFriendRequestErrorCode.NO_SUCH_REQUEST: (409, 'no_such_request'),
}
ROLLBACK_REQUEST_STATUSES = {
    RollbackFriendRequestErrorCode.NO_SUCH_REQUEST: (409, 'no_such_request'),
}
UNFRIEND_STATUSES = {
    UnfriendErrorCode.NO_SUCH_USER: (404, 'no_such_user'),
    UnfriendErrorCode.NOT_A_FRIEND: (409, 'not_a_friend'),
}


def _other_user():
    return require_string(json_body(), 'userId')


@api_v1_bp.route('/friends/sendRequest', methods=['POST'])
@jwt_required
def api_send_friend_request():
    """Request body: {"userId": "..."}"""
    target = _other_user()
    try:
        get_services().friends_service.send_request(g.current_user_id, target)
    except ServiceError as e:
        return service_failure(e, SEND_REQUEST_STATUSES)
    return success()


@api_v1_bp.route('/friends/acceptRequest', methods=['POST'])
@jwt_required
def api_accept_friend_request():
    """Request body: {"userId": "<request sender>"}"""
    sender = _other_user()
    try:
        get_services().friends_service.accept_request(sender, g.current_user_id)
    except ServiceError as e:
        return service_failure(e, ACCEPT_REQUEST_STATUSES)
    return success()


@api_v1_bp.route('/friends/rejectRequest', methods=['POST'])
@jwt_required
def api_reject_friend_request():
    """Request body: {"userId": "<request sender>"}"""
    sender = _other_user()
    try:
        get_services().friends_service.reject_request(sender, g.current_user_id)
    except ServiceError as e:
        return service_failure(e, REJECT_REQUEST_STATUSES)
    return success()


@api_v1_bp.route('/friends/rollbackRequest', methods=['POST'])
@jwt_required
def api_rollback_friend_request():
    """Request body: {"userId": "<request target>"}"""
    target = _other_user()
    try:
        get_services().friends_service.rollback_request(g.current_user_id, target)
    except ServiceError as e:
        return service_failure(e, ROLLBACK_REQUEST_STATUSES)
    return success()


@api_v1_bp.route('/friends/unfriend', methods=['POST'])
@jwt_required
def api_unfriend():
    """Request body: {"userId": "..."}"""
    target = _other_user()
    try:
        get_services().friends_service.unfriend(g.current_user_id, target)
    except ServiceError as e:
        return service_failure(e, UNFRIEND_STATUSES)
    return success()


@api_v1_bp.route('/friends/get', methods=['GET'])
@jwt_required
def api_get_friends():
    """Related users grouped by status; all statuses when none are given.

    Returns:
        {"ok": true, "value": {"friends": [...], "subscriber": [...], "subscription": [...]}}
    """
    try:
        statuses = [FriendStatus(value) for value in list_arg('statuses')] or list(FriendStatus)
    except ValueError as e:
        raise RequestError(str(e))
    try:
        friends = get_services().friends_service.get_friends(statuses, g.current_user_id)
    except ServiceError as e:
        return service_failure(e, {})
    return success({status.value: ids for status, ids in friends.items()})
