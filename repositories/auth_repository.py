"""
Credential store.

One record per user id holding the email, the password hash, the currently
valid refresh token and the email-verified flag. It is the sole source of
truth for authentication.
"""
import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import generate_password_hash, check_password_hash

from extensions import db
from models import Credential
from repositories import MutationWorkItem, RecordNotFound, commit

logger = logging.getLogger(__name__)


def hash_password(password):
    """Hash a password for storage."""
    return generate_password_hash(password, method='pbkdf2:sha256')


@dataclass(frozen=True)
class UserInfo:
    user_id: str
    email: str
    password_hash: str
    refresh_token: str
    email_verified: bool


class AuthRepository:
    """SQLAlchemy-backed credential store."""

    def create_user(self, uid, email, password, refresh_token):
        """Create a credential record; rollback deletes it."""
        return MutationWorkItem(
            perform=lambda: self._create_user(uid, email, password, refresh_token),
            rollback=lambda: self._delete_user(uid),
        )

    def check_credentials(self, email, password):
        """Check a password against the stored hash.

        Returns:
            False if there is no record for the email or the password is wrong.
        """
        credential = Credential.query.filter_by(email=email).first()
        if credential is None:
            logger.info(f"check_credentials: no credentials for {email}")
            return False
        return check_password_hash(credential.password_hash, password)

    def get_user_id_by_email(self, email):
        """Return the user id owning `email`, or None."""
        credential = Credential.query.filter_by(email=email).first()
        return credential.id if credential else None

    def get_user_info(self, uid):
        """Return the UserInfo for `uid`, or None."""
        credential = db.session.get(Credential, uid)
        if credential is None:
            return None
        return UserInfo(
            user_id=credential.id,
            email=credential.email,
            password_hash=credential.password_hash,
            refresh_token=credential.refresh_token,
            email_verified=credential.email_verified,
        )

    def is_user_exists(self, uid):
        return db.session.get(Credential, uid) is not None

    def update_refresh_token(self, uid, token):
        """Replace the stored refresh token; rollback restores the previous one."""
        existed = self._capture(uid)
        if isinstance(existed, Exception):
            return MutationWorkItem.failed(existed)
        return MutationWorkItem(
            perform=lambda: self._update(uid, refresh_token=token),
            rollback=lambda: self._update(uid, refresh_token=existed.refresh_token),
        )

    def update_password(self, uid, password):
        """Replace the stored password hash; rollback restores the previous hash."""
        existed = self._capture(uid)
        if isinstance(existed, Exception):
            return MutationWorkItem.failed(existed)
        password_hash = hash_password(password)
        return MutationWorkItem(
            perform=lambda: self._update(uid, password_hash=password_hash),
            rollback=lambda: self._update(uid, password_hash=existed.password_hash),
        )

    def update_email(self, uid, email):
        """Change the email and reset the verified flag.

        Rollback restores both the previous email and the previous flag.
        """
        existed = self._capture(uid)
        if isinstance(existed, Exception):
            return MutationWorkItem.failed(existed)
        return MutationWorkItem(
            perform=lambda: self._update(uid, email=email, email_verified=False),
            rollback=lambda: self._update(
                uid, email=existed.email, email_verified=existed.email_verified
            ),
        )

    def mark_user_email_validated(self, uid):
        """Set the verified flag; a no-op both ways if it was already set."""
        existed = self._capture(uid)
        if isinstance(existed, Exception):
            return MutationWorkItem.failed(existed)
        if existed.email_verified:
            return MutationWorkItem(perform=lambda: None, rollback=lambda: None)
        return MutationWorkItem(
            perform=lambda: self._update(uid, email_verified=True),
            rollback=lambda: self._update(uid, email_verified=False),
        )

    def _capture(self, uid):
        try:
            existed = self.get_user_info(uid)
        except SQLAlchemyError as e:
            logger.error(f"Failed to read credentials for {uid}: {e}")
            return e
        if existed is None:
            return RecordNotFound(f'no credentials for user {uid}')
        return existed

    def _create_user(self, uid, email, password, refresh_token):
        logger.info(f"create credentials start[uid={uid} email={email}]")
        db.session.add(Credential(
            id=uid,
            email=email,
            password_hash=hash_password(password),
            refresh_token=refresh_token,
            email_verified=False,
        ))
        commit()
        logger.info(f"create credentials success[uid={uid}]")

    def _delete_user(self, uid):
        credential = db.session.get(Credential, uid)
        if credential is not None:
            db.session.delete(credential)
        commit()
        logger.info(f"delete credentials success[uid={uid}]")

    def _update(self, uid, **values):
        updated = Credential.query.filter_by(id=uid).update(values, synchronize_session=False)
        if not updated:
            db.session.rollback()
            raise RecordNotFound(f'no credentials for user {uid}')
        commit()
        logger.info(f"update credentials success[uid={uid} fields={sorted(values)}]")
