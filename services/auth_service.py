"""
Authentication service.

Orchestrates credential-store and profile-store mutations with token
issuance. Multi-step writes are composed from compensating mutations: if a
later write fails, the earlier ones are rolled back.

Every successful login, refresh, logout or credential update overwrites the
stored refresh token, so at most one refresh token is accepted per user.
"""
import logging
import uuid
from dataclasses import dataclass
from enum import Enum

from sqlalchemy.exc import SQLAlchemyError

from repositories import perform_all
from repositories.users_repository import Profile
from services.errors import ServiceError
from services.format_validation import FormatError
from services.jwt_service import JwtError, JwtErrorCode
from services.locks import KeyedLocks

logger = logging.getLogger(__name__)


class SignupErrorCode(Enum):
    WRONG_FORMAT = 'wrong_format'
    ALREADY_TAKEN = 'already_taken'
    INTERNAL = 'internal'


class LoginErrorCode(Enum):
    WRONG_CREDENTIALS = 'wrong_credentials'
    INTERNAL = 'internal'


class RefreshErrorCode(Enum):
    TOKEN_EXPIRED = 'token_expired'
    TOKEN_IS_WRONG = 'token_is_wrong'
    INTERNAL = 'internal'


class LogoutErrorCode(Enum):
    INTERNAL = 'internal'


class UpdateEmailErrorCode(Enum):
    WRONG_FORMAT = 'wrong_format'
    ALREADY_TAKEN = 'already_taken'
    INTERNAL = 'internal'


class UpdatePasswordErrorCode(Enum):
    WRONG_FORMAT = 'wrong_format'
    OLD_PASSWORD_IS_WRONG = 'old_password_is_wrong'
    INTERNAL = 'internal'


class RegisterForPushNotificationsErrorCode(Enum):
    INTERNAL = 'internal'


@dataclass(frozen=True)
class Session:
    id: str
    access_token: str
    refresh_token: str

    def to_dict(self):
        return {
            'id': self.id,
            'accessToken': self.access_token,
            'refreshToken': self.refresh_token,
        }


class AuthService:
    """Signup, login and session lifecycle."""

    def __init__(self, auth_repository, users_repository, push_tokens_repository,
                 jwt_service, format_validation, locks=None):
        self.auth_repository = auth_repository
        self.users_repository = users_repository
        self.push_tokens_repository = push_tokens_repository
        self.jwt_service = jwt_service
        self.format_validation = format_validation
        self.locks = locks or KeyedLocks()

    def signup(self, email, password):
        """Register a new user and open a session.

        Creates the profile record and then the credential record; if the
        credential record cannot be created the profile record is rolled back.
        """
        internal = SignupErrorCode.INTERNAL
        logger.info("signup: start")
        try:
            self.format_validation.validate_email_format(email)
            self.format_validation.validate_password_format(password)
        except FormatError as e:
            logger.info(f"signup: wrong format: {e}")
            raise ServiceError(SignupErrorCode.WRONG_FORMAT, str(e))

        try:
            existing_uid = self.auth_repository.get_user_id_by_email(email)
        except SQLAlchemyError as e:
            logger.error(f"signup: getting uid by email failed: {e}")
            raise ServiceError(internal, str(e))
        if existing_uid is not None:
            logger.info("signup: email already taken")
            raise ServiceError(SignupErrorCode.ALREADY_TAKEN)

        uid = str(uuid.uuid4())
        access_token, refresh_token = self._issue_pair(uid, internal)
        try:
            perform_all(
                self.users_repository.store_user(
                    Profile(user_id=uid, display_name=email.split('@')[0])
                ),
                self.auth_repository.create_user(uid, email, password, refresh_token),
            )
        except Exception as e:
            logger.error(f"signup: storing user failed: {e}")
            raise ServiceError(internal, str(e))

        logger.info(f"signup: success[id={uid}]")
        return Session(id=uid, access_token=access_token, refresh_token=refresh_token)

    def login(self, email, password):
        """Open a new session; the previous refresh token stops being accepted."""
        internal = LoginErrorCode.INTERNAL
        logger.info("login: start")
        try:
            valid = self.auth_repository.check_credentials(email, password)
            uid = self.auth_repository.get_user_id_by_email(email) if valid else None
        except SQLAlchemyError as e:
            logger.error(f"login: credentials check failed: {e}")
            raise ServiceError(internal, str(e))
        if not valid or uid is None:
            logger.info("login: wrong credentials")
            raise ServiceError(LoginErrorCode.WRONG_CREDENTIALS)

        with self.locks.hold(uid):
            session = self._rotate_session(uid, internal)
        logger.info(f"login: success[id={uid}]")
        return session

    def refresh(self, refresh_token):
        """Exchange the current refresh token for a new session.

        The presented token must be the one currently stored for its subject;
        a superseded token fails with TOKEN_IS_WRONG even before it expires.
        """
        logger.info("refresh: start")
        try:
            self.jwt_service.validate_refresh_token(refresh_token)
            uid = self.jwt_service.get_refresh_token_subject(refresh_token)
        except JwtError as e:
            logger.info(f"refresh: token validation failed: {e}")
            if e.code == JwtErrorCode.TOKEN_EXPIRED:
                raise ServiceError(RefreshErrorCode.TOKEN_EXPIRED, str(e))
            if e.code == JwtErrorCode.TOKEN_INVALID:
                raise ServiceError(RefreshErrorCode.TOKEN_IS_WRONG, str(e))
            raise ServiceError(RefreshErrorCode.INTERNAL, str(e))

        with self.locks.hold(uid):
            try:
                info = self.auth_repository.get_user_info(uid)
            except SQLAlchemyError as e:
                logger.error(f"refresh: cannot get user info: {e}")
                raise ServiceError(RefreshErrorCode.INTERNAL, str(e))
            if info is None or info.refresh_token != refresh_token:
                logger.info(f"refresh: stored token does not match[id={uid}]")
                raise ServiceError(RefreshErrorCode.TOKEN_IS_WRONG)
            session = self._rotate_session(uid, RefreshErrorCode.INTERNAL)

        logger.info(f"refresh: success[id={uid}]")
        return session

    def logout(self, uid):
        """Invalidate any outstanding refresh token by rotating it."""
        logger.info(f"logout: start[id={uid}]")
        with self.locks.hold(uid):
            refresh_token = self._issue(self.jwt_service.issue_refresh_token, uid, LogoutErrorCode.INTERNAL)
            self._perform(
                self.auth_repository.update_refresh_token(uid, refresh_token),
                LogoutErrorCode.INTERNAL,
            )
        logger.info(f"logout: success[id={uid}]")

    def update_email(self, email, uid):
        """Change the email (resetting verification) and rotate the session."""
        internal = UpdateEmailErrorCode.INTERNAL
        logger.info(f"update_email: start[id={uid}]")
        try:
            self.format_validation.validate_email_format(email)
        except FormatError as e:
            raise ServiceError(UpdateEmailErrorCode.WRONG_FORMAT, str(e))
        try:
            owner = self.auth_repository.get_user_id_by_email(email)
        except SQLAlchemyError as e:
            logger.error(f"update_email: cannot check email existence: {e}")
            raise ServiceError(internal, str(e))
        if owner is not None:
            logger.info("update_email: email is already taken")
            raise ServiceError(UpdateEmailErrorCode.ALREADY_TAKEN)

        with self.locks.hold(uid):
            access_token, refresh_token = self._issue_pair(uid, internal)
            try:
                perform_all(
                    self.auth_repository.update_email(uid, email),
                    self.auth_repository.update_refresh_token(uid, refresh_token),
                )
            except Exception as e:
                logger.error(f"update_email: storing changes failed: {e}")
                raise ServiceError(internal, str(e))

        logger.info(f"update_email: success[id={uid}]")
        return Session(id=uid, access_token=access_token, refresh_token=refresh_token)

    def update_password(self, old_password, new_password, uid):
        """Change the password after checking the old one, and rotate the session."""
        internal = UpdatePasswordErrorCode.INTERNAL
        logger.info(f"update_password: start[id={uid}]")
        try:
            self.format_validation.validate_password_format(new_password)
        except FormatError as e:
            raise ServiceError(UpdatePasswordErrorCode.WRONG_FORMAT, str(e))

        with self.locks.hold(uid):
            try:
                info = self.auth_repository.get_user_info(uid)
                if info is None:
                    raise ServiceError(internal, f'no credentials for user {uid}')
                passed = self.auth_repository.check_credentials(info.email, old_password)
            except SQLAlchemyError as e:
                logger.error(f"update_password: cannot check old password: {e}")
                raise ServiceError(internal, str(e))
            if not passed:
                logger.info("update_password: old password is wrong")
                raise ServiceError(UpdatePasswordErrorCode.OLD_PASSWORD_IS_WRONG)

            access_token, refresh_token = self._issue_pair(uid, internal)
            try:
                perform_all(
                    self.auth_repository.update_password(uid, new_password),
                    self.auth_repository.update_refresh_token(uid, refresh_token),
                )
            except Exception as e:
                logger.error(f"update_password: storing changes failed: {e}")
                raise ServiceError(internal, str(e))

        logger.info(f"update_password: success[id={uid}]")
        return Session(id=uid, access_token=access_token, refresh_token=refresh_token)

    def register_for_push_notifications(self, push_token, uid):
        logger.info(f"register_for_push_notifications: start[id={uid}]")
        self._perform(
            self.push_tokens_repository.store_push_token(uid, push_token),
            RegisterForPushNotificationsErrorCode.INTERNAL,
        )
        logger.info(f"register_for_push_notifications: success[id={uid}]")

    def _rotate_session(self, uid, internal):
        access_token, refresh_token = self._issue_pair(uid, internal)
        self._perform(self.auth_repository.update_refresh_token(uid, refresh_token), internal)
        return Session(id=uid, access_token=access_token, refresh_token=refresh_token)

    def _issue_pair(self, uid, internal):
        access_token = self._issue(self.jwt_service.issue_access_token, uid, internal)
        refresh_token = self._issue(self.jwt_service.issue_refresh_token, uid, internal)
        return access_token, refresh_token

    def _issue(self, issue, uid, internal):
        try:
            return issue(uid)
        except JwtError as e:
            logger.error(f"issuing token failed[id={uid}]: {e}")
            raise ServiceError(internal, str(e))

    def _perform(self, work_item, internal):
        try:
            return work_item.perform()
        except Exception as e:
            logger.error(f"storing changes failed: {e}")
            raise ServiceError(internal, str(e))
