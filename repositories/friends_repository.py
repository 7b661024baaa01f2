"""
Friends store: pending friend requests and mutual friendships.
"""
import logging
from enum import Enum

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models import FriendRequest, Friendship
from repositories import MutationWorkItem, commit

logger = logging.getLogger(__name__)


class FriendStatus(Enum):
    SUBSCRIBER = 'subscriber'       # they sent me a request
    SUBSCRIPTION = 'subscription'   # I sent them a request
    FRIENDS = 'friends'


def _ordered(first, second):
    return (first, second) if first < second else (second, first)


class FriendsRepository:
    """SQLAlchemy-backed friends store."""

    def store_friend_request(self, sender, target):
        return MutationWorkItem(
            perform=lambda: self._insert_request(sender, target),
            rollback=lambda: self._delete_request(sender, target),
        )

    def remove_friend_request(self, sender, target):
        """Delete a pending request; rollback restores it if it existed."""
        try:
            existed = self.has_friend_request(sender, target)
        except SQLAlchemyError as e:
            return MutationWorkItem.failed(e)

        def rollback():
            if existed:
                self._insert_request(sender, target)

        return MutationWorkItem(perform=lambda: self._delete_request(sender, target), rollback=rollback)

    def store_friendship(self, first, second):
        return MutationWorkItem(
            perform=lambda: self._insert_friendship(first, second),
            rollback=lambda: self._delete_friendship(first, second),
        )

    def remove_friendship(self, first, second):
        """Delete a friendship; rollback restores it if it existed."""
        try:
            existed = self.get_status(first, second) == FriendStatus.FRIENDS
        except SQLAlchemyError as e:
            return MutationWorkItem.failed(e)

        def rollback():
            if existed:
                self._insert_friendship(first, second)

        return MutationWorkItem(perform=lambda: self._delete_friendship(first, second), rollback=rollback)

    def has_friend_request(self, sender, target):
        return FriendRequest.query.filter_by(sender_id=sender, target_id=target).first() is not None

    def get_status(self, user_id, other):
        """Status of `other` relative to `user_id`, or None if unrelated."""
        first, second = _ordered(user_id, other)
        if Friendship.query.filter_by(first_id=first, second_id=second).first():
            return FriendStatus.FRIENDS
        if self.has_friend_request(user_id, other):
            return FriendStatus.SUBSCRIPTION
        if self.has_friend_request(other, user_id):
            return FriendStatus.SUBSCRIBER
        return None

    def get_friends(self, user_id, statuses):
        """Map each requested status to the user ids holding it relative to `user_id`."""
        result = {}
        for status in statuses:
            if status == FriendStatus.FRIENDS:
                rows = Friendship.query.filter(
                    or_(Friendship.first_id == user_id, Friendship.second_id == user_id)
                ).all()
                ids = [row.second_id if row.first_id == user_id else row.first_id for row in rows]
            elif status == FriendStatus.SUBSCRIPTION:
                rows = FriendRequest.query.filter_by(sender_id=user_id).all()
                ids = [row.target_id for row in rows]
            else:
                rows = FriendRequest.query.filter_by(target_id=user_id).all()
                ids = [row.sender_id for row in rows]
            result[status] = sorted(ids)
        return result

    def _insert_request(self, sender, target):
        db.session.add(FriendRequest(sender_id=sender, target_id=target))
        commit()
        logger.info(f"store friend request success[{sender} -> {target}]")

    def _delete_request(self, sender, target):
        for request in FriendRequest.query.filter_by(sender_id=sender, target_id=target).all():
            db.session.delete(request)
        commit()
        logger.info(f"remove friend request success[{sender} -> {target}]")

    def _insert_friendship(self, first, second):
        first, second = _ordered(first, second)
        db.session.add(Friendship(first_id=first, second_id=second))
        commit()
        logger.info(f"store friendship success[{first} <-> {second}]")

    def _delete_friendship(self, first, second):
        first, second = _ordered(first, second)
        for friendship in Friendship.query.filter_by(first_id=first, second_id=second).all():
            db.session.delete(friendship)
        commit()
        logger.info(f"remove friendship success[{first} <-> {second}]")
