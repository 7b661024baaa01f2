"""
Users service: public profiles and the caller's own profile.
"""
import logging
from enum import Enum

from sqlalchemy.exc import SQLAlchemyError

from repositories import RecordNotFound
from services.errors import ServiceError
from services.format_validation import FormatError

logger = logging.getLogger(__name__)


class GetUsersErrorCode(Enum):
    INTERNAL = 'internal'


class SearchUsersErrorCode(Enum):
    INTERNAL = 'internal'


class GetProfileErrorCode(Enum):
    NOT_FOUND = 'not_found'
    INTERNAL = 'internal'


class SetDisplayNameErrorCode(Enum):
    WRONG_FORMAT = 'wrong_format'
    NOT_FOUND = 'not_found'
    INTERNAL = 'internal'


class UsersService:
    """Profile lookups and updates."""

    def __init__(self, users_repository, auth_repository, format_validation):
        self.users_repository = users_repository
        self.auth_repository = auth_repository
        self.format_validation = format_validation

    def get_users(self, ids, actor):
        try:
            return self.users_repository.get_users(ids)
        except SQLAlchemyError as e:
            logger.error(f"get_users: failed[actor={actor}]: {e}")
            raise ServiceError(GetUsersErrorCode.INTERNAL, str(e))

    def search_users(self, query, actor):
        """Profiles whose display name starts with `query`, without the actor."""
        try:
            found = self.users_repository.search_users(query)
        except SQLAlchemyError as e:
            logger.error(f"search_users: failed[actor={actor}]: {e}")
            raise ServiceError(SearchUsersErrorCode.INTERNAL, str(e))
        return [profile for profile in found if profile.user_id != actor]

    def get_profile(self, uid):
        """Return the caller's profile with email and verification state.

        Returns:
            dict: {"user": {...}, "email": str, "emailVerified": bool}
        """
        try:
            profiles = self.users_repository.get_users([uid])
            info = self.auth_repository.get_user_info(uid)
        except SQLAlchemyError as e:
            logger.error(f"get_profile: failed[id={uid}]: {e}")
            raise ServiceError(GetProfileErrorCode.INTERNAL, str(e))
        if not profiles or info is None:
            raise ServiceError(GetProfileErrorCode.NOT_FOUND)
        return {
            'user': profiles[0].to_dict(),
            'email': info.email,
            'emailVerified': info.email_verified,
        }

    def set_display_name(self, name, uid):
        logger.info(f"set_display_name: start[id={uid}]")
        try:
            self.format_validation.validate_display_name_format(name)
        except FormatError as e:
            raise ServiceError(SetDisplayNameErrorCode.WRONG_FORMAT, str(e))
        try:
            self.users_repository.update_display_name(name.strip(), uid).perform()
        except RecordNotFound as e:
            raise ServiceError(SetDisplayNameErrorCode.NOT_FOUND, str(e))
        except Exception as e:
            logger.error(f"set_display_name: failed[id={uid}]: {e}")
            raise ServiceError(SetDisplayNameErrorCode.INTERNAL, str(e))
        logger.info(f"set_display_name: success[id={uid}]")
