"""
Email verification store: one pending confirmation code per email.
"""
import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models import EmailVerification
from repositories import MutationWorkItem, commit

logger = logging.getLogger(__name__)


class VerificationRepository:
    """SQLAlchemy-backed confirmation code store."""

    def store_code(self, email, code):
        """Store (or replace) the code for `email`; rollback restores the previous state."""
        try:
            previous = self._snapshot(email)
        except SQLAlchemyError as e:
            return MutationWorkItem.failed(e)
        return MutationWorkItem(
            perform=lambda: self._put(email, code, datetime.utcnow()),
            rollback=lambda: self._restore(email, previous),
        )

    def remove_code(self, email):
        """Delete the code for `email`; rollback restores it."""
        try:
            previous = self._snapshot(email)
        except SQLAlchemyError as e:
            return MutationWorkItem.failed(e)
        return MutationWorkItem(
            perform=lambda: self._delete(email),
            rollback=lambda: self._restore(email, previous),
        )

    def get_code(self, email, lifetime=None):
        """Return the stored code for `email`, or None if absent or older than `lifetime`."""
        record = db.session.get(EmailVerification, email)
        if record is None:
            return None
        if lifetime is not None and record.is_expired(lifetime):
            return None
        return record.code

    def remove_expired(self, lifetime):
        """Delete every code older than `lifetime`. Returns the number deleted."""
        cutoff = datetime.utcnow() - lifetime
        count = EmailVerification.query.filter(
            EmailVerification.created_at < cutoff
        ).delete(synchronize_session=False)
        commit()
        return count

    def _snapshot(self, email):
        record = db.session.get(EmailVerification, email)
        return (record.code, record.created_at) if record else None

    def _restore(self, email, snapshot):
        if snapshot is None:
            self._delete(email)
        else:
            self._put(email, *snapshot)

    def _put(self, email, code, created_at):
        record = db.session.get(EmailVerification, email)
        if record is None:
            db.session.add(EmailVerification(email=email, code=code, created_at=created_at))
        else:
            record.code = code
            record.created_at = created_at
        commit()
        logger.info(f"store confirmation code success[email={email}]")

    def _delete(self, email):
        record = db.session.get(EmailVerification, email)
        if record is not None:
            db.session.delete(record)
        commit()
