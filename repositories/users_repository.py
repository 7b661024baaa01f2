"""
Profile store: public user records (display name, avatar).
"""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models import User
from repositories import MutationWorkItem, RecordNotFound, commit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Profile:
    user_id: str
    display_name: str
    avatar_id: Optional[str] = None

    def to_dict(self):
        return {
            'id': self.user_id,
            'displayName': self.display_name,
            'avatarId': self.avatar_id,
        }


def _to_profile(user):
    return Profile(user_id=user.id, display_name=user.display_name, avatar_id=user.avatar_id)


class UsersRepository:
    """SQLAlchemy-backed profile store."""

    def store_user(self, profile):
        """Insert or overwrite a profile.

        Rollback restores the previous profile, or deletes the record if
        there was none.
        """
        try:
            existing = self.get_users([profile.user_id])
        except SQLAlchemyError as e:
            logger.error(f"store_user: failed to get initial user {profile.user_id}: {e}")
            return MutationWorkItem.failed(e)
        previous = existing[0] if existing else None

        def rollback():
            if previous is None:
                self._remove_user(profile.user_id)
            else:
                self._store_user(previous)

        return MutationWorkItem(perform=lambda: self._store_user(profile), rollback=rollback)

    def get_users(self, ids):
        """Return the profiles that exist among `ids`."""
        if not ids:
            return []
        users = User.query.filter(User.id.in_(list(ids))).order_by(User.id).all()
        return [_to_profile(user) for user in users]

    def search_users(self, query):
        """Return profiles whose display name starts with `query`."""
        pattern = query.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_') + '%'
        users = User.query.filter(
            User.display_name.like(pattern, escape='\\')
        ).order_by(User.display_name, User.id).all()
        return [_to_profile(user) for user in users]

    def update_display_name(self, name, uid):
        """Change the display name; rollback restores the previous one."""
        try:
            existing = self.get_users([uid])
        except SQLAlchemyError as e:
            return MutationWorkItem.failed(e)
        if not existing:
            return MutationWorkItem.failed(RecordNotFound(f'no such user {uid}'))
        previous_name = existing[0].display_name
        return MutationWorkItem(
            perform=lambda: self._update_display_name(name, uid),
            rollback=lambda: self._update_display_name(previous_name, uid),
        )

    def _store_user(self, profile):
        logger.info(f"store user start[id={profile.user_id}]")
        user = db.session.get(User, profile.user_id)
        if user is None:
            db.session.add(User(
                id=profile.user_id,
                display_name=profile.display_name,
                avatar_id=profile.avatar_id,
            ))
        else:
            user.display_name = profile.display_name
            user.avatar_id = profile.avatar_id
        commit()
        logger.info(f"store user success[id={profile.user_id}]")

    def _remove_user(self, uid):
        user = db.session.get(User, uid)
        if user is not None:
            db.session.delete(user)
        commit()
        logger.info(f"remove user success[id={uid}]")

    def _update_display_name(self, name, uid):
        User.query.filter_by(id=uid).update({'display_name': name}, synchronize_session=False)
        commit()
        logger.info(f"update display name success[id={uid}]")
