"""
Friends service.

A friendship starts as a request from `sender` to `target`. The target may
accept (turning it into a friendship) or reject it; the sender may roll it
back. Either friend may unfriend the other.
"""
import logging
from enum import Enum

from sqlalchemy.exc import SQLAlchemyError

from repositories import perform_all
from repositories.friends_repository import FriendStatus
from services.errors import ServiceError

logger = logging.getLogger(__name__)


class SendFriendRequestErrorCode(Enum):
    NO_SUCH_USER = 'no_such_user'
    ALREADY_SENT = 'already_sent'
    HAVE_INCOMING_REQUEST = 'have_incoming_request'
    ALREADY_FRIENDS = 'already_friends'
    INTERNAL = 'internal'


class AcceptFriendRequestErrorCode(Enum):
    NO_SUCH_REQUEST = 'no_such_request'
    INTERNAL = 'internal'


class RejectFriendRequestErrorCode(Enum):
    NO_SUCH_REQUEST = 'no_such_request'
    INTERNAL = 'internal'


class RollbackFriendRequestErrorCode(Enum):
    NO_SUCH_REQUEST = 'no_such_request'
    INTERNAL = 'internal'


class UnfriendErrorCode(Enum):
    NO_SUCH_USER = 'no_such_user'
    NOT_A_FRIEND = 'not_a_friend'
    INTERNAL = 'internal'


class GetFriendsErrorCode(Enum):
    INTERNAL = 'internal'


class FriendsService:
    """Friend requests and friendships."""

    def __init__(self, friends_repository, users_repository, push_service=None, realtime_events=None):
        self.friends_repository = friends_repository
        self.users_repository = users_repository
        self.push_service = push_service
        self.realtime_events = realtime_events

    def send_request(self, sender, target):
        internal = SendFriendRequestErrorCode.INTERNAL
        logger.info(f"send_request: start[{sender} -> {target}]")
        if sender == target:
            raise ServiceError(SendFriendRequestErrorCode.NO_SUCH_USER, 'cannot befriend yourself')
        self._require_user(target, SendFriendRequestErrorCode.NO_SUCH_USER, internal)

        status = self._status(sender, target, internal)
        if status == FriendStatus.FRIENDS:
            raise ServiceError(SendFriendRequestErrorCode.ALREADY_FRIENDS)
        if status == FriendStatus.SUBSCRIPTION:
            raise ServiceError(SendFriendRequestErrorCode.ALREADY_SENT)
        if status == FriendStatus.SUBSCRIBER:
            raise ServiceError(SendFriendRequestErrorCode.HAVE_INCOMING_REQUEST)

        self._perform(internal, self.friends_repository.store_friend_request(sender, target))
        logger.info(f"send_request: success[{sender} -> {target}]")
        self._friends_updated(sender, target)
        if self.push_service is not None:
            self.push_service.friend_request_received(target, sender)

    def accept_request(self, sender, target):
        """Accept the request `sender` sent to `target`."""
        internal = AcceptFriendRequestErrorCode.INTERNAL
        logger.info(f"accept_request: start[{sender} -> {target}]")
        self._require_request(sender, target, AcceptFriendRequestErrorCode.NO_SUCH_REQUEST, internal)
        self._perform(
            internal,
            self.friends_repository.remove_friend_request(sender, target),
            self.friends_repository.store_friendship(sender, target),
        )
        logger.info(f"accept_request: success[{sender} <-> {target}]")
        self._friends_updated(sender, target)
        if self.push_service is not None:
            self.push_service.friend_request_accepted(sender, target)

    def reject_request(self, sender, target):
        """Reject the request `sender` sent to `target`."""
        internal = RejectFriendRequestErrorCode.INTERNAL
        logger.info(f"reject_request: start[{sender} -> {target}]")
        self._require_request(sender, target, RejectFriendRequestErrorCode.NO_SUCH_REQUEST, internal)
        self._perform(internal, self.friends_repository.remove_friend_request(sender, target))
        logger.info(f"reject_request: success[{sender} -> {target}]")
        self._friends_updated(sender, target)

    def rollback_request(self, sender, target):
        """Withdraw the request `sender` sent to `target`."""
        internal = RollbackFriendRequestErrorCode.INTERNAL
        logger.info(f"rollback_request: start[{sender} -> {target}]")
        self._require_request(sender, target, RollbackFriendRequestErrorCode.NO_SUCH_REQUEST, internal)
        self._perform(internal, self.friends_repository.remove_friend_request(sender, target))
        logger.info(f"rollback_request: success[{sender} -> {target}]")
        self._friends_updated(sender, target)

    def unfriend(self, sender, target):
        internal = UnfriendErrorCode.INTERNAL
        logger.info(f"unfriend: start[{sender} -> {target}]")
        self._require_user(target, UnfriendErrorCode.NO_SUCH_USER, internal)
        if self._status(sender, target, internal) != FriendStatus.FRIENDS:
            raise ServiceError(UnfriendErrorCode.NOT_A_FRIEND)
        self._perform(internal, self.friends_repository.remove_friendship(sender, target))
        logger.info(f"unfriend: success[{sender} -> {target}]")
        self._friends_updated(sender, target)

    def get_friends(self, statuses, user_id):
        """Map each requested FriendStatus to the ids of users holding it."""
        try:
            return self.friends_repository.get_friends(user_id, statuses)
        except SQLAlchemyError as e:
            logger.error(f"get_friends: cannot get friends: {e}")
            raise ServiceError(GetFriendsErrorCode.INTERNAL, str(e))

    def _require_user(self, uid, missing, internal):
        try:
            found = self.users_repository.get_users([uid])
        except SQLAlchemyError as e:
            logger.error(f"cannot get user {uid}: {e}")
            raise ServiceError(internal, str(e))
        if not found:
            raise ServiceError(missing, f'no such user: {uid}')

    def _require_request(self, sender, target, missing, internal):
        try:
            exists = self.friends_repository.has_friend_request(sender, target)
        except SQLAlchemyError as e:
            logger.error(f"cannot check friend request: {e}")
            raise ServiceError(internal, str(e))
        if not exists:
            raise ServiceError(missing)

    def _status(self, user_id, other, internal):
        try:
            return self.friends_repository.get_status(user_id, other)
        except SQLAlchemyError as e:
            logger.error(f"cannot get friend status: {e}")
            raise ServiceError(internal, str(e))

    def _perform(self, internal, *work_items):
        try:
            perform_all(*work_items)
        except Exception as e:
            logger.error(f"storing friends changes failed: {e}")
            raise ServiceError(internal, str(e))

    def _friends_updated(self, *users):
        if self.realtime_events is None:
            return
        for user in users:
            self.realtime_events.friends_updated(user)
