"""
Email verification service.

A six-digit code is stored per email and sent to that address; presenting
the code back marks the email as verified.
"""
import logging
import secrets
from enum import Enum

from sqlalchemy.exc import SQLAlchemyError

from email_service import send_confirmation_code_email
from repositories import perform_all
from services.errors import ServiceError

logger = logging.getLogger(__name__)

CONFIRMATION_CODE_LENGTH = 6


class SendConfirmationCodeErrorCode(Enum):
    ALREADY_CONFIRMED = 'already_confirmed'
    NOT_DELIVERED = 'not_delivered'
    INTERNAL = 'internal'


class ConfirmEmailErrorCode(Enum):
    WRONG_CONFIRMATION_CODE = 'wrong_confirmation_code'
    INTERNAL = 'internal'


def generate_confirmation_code():
    return ''.join(secrets.choice('0123456789') for _ in range(CONFIRMATION_CODE_LENGTH))


class VerificationService:
    """Sends and checks email confirmation codes.

    Args:
        code_lifetime (timedelta): Codes older than this are treated as absent
        send_email: Callable(email, code) -> bool that delivers the code
    """

    def __init__(self, auth_repository, verification_repository, code_lifetime,
                 send_email=send_confirmation_code_email):
        self.auth_repository = auth_repository
        self.verification_repository = verification_repository
        self.code_lifetime = code_lifetime
        self.send_email = send_email

    def send_confirmation_code(self, uid):
        internal = SendConfirmationCodeErrorCode.INTERNAL
        logger.info(f"send_confirmation_code: start[id={uid}]")
        info = self._user_info(uid, internal)
        if info.email_verified:
            raise ServiceError(SendConfirmationCodeErrorCode.ALREADY_CONFIRMED)

        code = generate_confirmation_code()
        work_item = self.verification_repository.store_code(info.email, code)
        try:
            work_item.perform()
        except Exception as e:
            logger.error(f"send_confirmation_code: storing code failed: {e}")
            raise ServiceError(internal, str(e))

        if not self.send_email(info.email, code):
            logger.error(f"send_confirmation_code: delivery failed[id={uid}]")
            try:
                work_item.rollback()
            except Exception as e:
                logger.error(f"send_confirmation_code: rollback failed: {e}")
            raise ServiceError(SendConfirmationCodeErrorCode.NOT_DELIVERED)

        logger.info(f"send_confirmation_code: success[id={uid}]")

    def confirm_email(self, uid, code):
        internal = ConfirmEmailErrorCode.INTERNAL
        logger.info(f"confirm_email: start[id={uid}]")
        info = self._user_info(uid, internal)
        try:
            stored = self.verification_repository.get_code(info.email, self.code_lifetime)
        except SQLAlchemyError as e:
            logger.error(f"confirm_email: cannot get code: {e}")
            raise ServiceError(internal, str(e))
        if stored is None or not secrets.compare_digest(stored, str(code)):
            logger.info(f"confirm_email: wrong code[id={uid}]")
            raise ServiceError(ConfirmEmailErrorCode.WRONG_CONFIRMATION_CODE)

        try:
            perform_all(
                self.auth_repository.mark_user_email_validated(uid),
                self.verification_repository.remove_code(info.email),
            )
        except Exception as e:
            logger.error(f"confirm_email: storing changes failed: {e}")
            raise ServiceError(internal, str(e))
        logger.info(f"confirm_email: success[id={uid}]")

    def _user_info(self, uid, internal):
        try:
            info = self.auth_repository.get_user_info(uid)
        except SQLAlchemyError as e:
            logger.error(f"cannot get user info[id={uid}]: {e}")
            raise ServiceError(internal, str(e))
        if info is None:
            raise ServiceError(internal, f'no credentials for user {uid}')
        return info
