"""
Push token store (latest device token per user).
"""
import logging

from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models import PushToken
from repositories import MutationWorkItem, commit

logger = logging.getLogger(__name__)


class PushTokensRepository:
    """SQLAlchemy-backed push token store."""

    def store_push_token(self, uid, token):
        """Set the user's push token; rollback restores the previous one (or none)."""
        try:
            previous = self.get_push_token(uid)
        except SQLAlchemyError as e:
            return MutationWorkItem.failed(e)

        def rollback():
            if previous is None:
                self._delete(uid)
            else:
                self._store(uid, previous)

        return MutationWorkItem(perform=lambda: self._store(uid, token), rollback=rollback)

    def get_push_token(self, uid):
        record = db.session.get(PushToken, uid)
        return record.token if record else None

    def _store(self, uid, token):
        record = db.session.get(PushToken, uid)
        if record is None:
            db.session.add(PushToken(user_id=uid, token=token))
        else:
            record.token = token
        commit()
        logger.info(f"store push token success[uid={uid}]")

    def _delete(self, uid):
        record = db.session.get(PushToken, uid)
        if record is not None:
            db.session.delete(record)
        commit()
