"""
Tests for the authentication service.

Tests:
- signup / login and their error codes
- refresh-token single validity
- compensation when a later write fails
- email and password updates
"""
import pytest
from unittest.mock import patch

from repositories import MutationWorkItem
from services.auth_service import (
    LoginErrorCode,
    RefreshErrorCode,
    SignupErrorCode,
    UpdateEmailErrorCode,
    UpdatePasswordErrorCode,
)
from services.errors import ServiceError
from conftest import TEST_PASSWORD, TEST_USERS


pytestmark = pytest.mark.unit


def error_code(call, *args):
    with pytest.raises(ServiceError) as exc_info:
        call(*args)
    return exc_info.value.code


class TestSignup:
    """Tests for signup."""

    def test_creates_profile_and_credentials(self, services, signup):
        session = signup('alice')

        profiles = services.users_repository.get_users([session.id])
        assert profiles[0].display_name == 'alice'
        info = services.auth_repository.get_user_info(session.id)
        assert info.email == TEST_USERS['alice']
        assert info.refresh_token == session.refresh_token
        assert info.email_verified is False
        assert services.jwt_service.get_access_token_subject(session.access_token) == session.id

    def test_email_already_taken(self, services, signup):
        signup('alice')
        code = error_code(services.auth_service.signup, TEST_USERS['alice'], TEST_PASSWORD)
        assert code == SignupErrorCode.ALREADY_TAKEN

    @pytest.mark.parametrize('email,password', [
        ('not-an-email', TEST_PASSWORD),
        ('dave@example.com', 'short'),
        ('dave@example.com', 'alllowercase1'),
    ])
    def test_wrong_format(self, services, email, password):
        assert error_code(services.auth_service.signup, email, password) == SignupErrorCode.WRONG_FORMAT

    def test_profile_rolled_back_when_credentials_fail(self, services):
        """A failed credential insert leaves no profile behind."""
        failing = MutationWorkItem.failed(RuntimeError('credentials store is down'))
        with patch.object(services.auth_repository, 'create_user', return_value=failing):
            code = error_code(services.auth_service.signup, TEST_USERS['alice'], TEST_PASSWORD)

        assert code == SignupErrorCode.INTERNAL
        assert services.users_repository.search_users('alice') == []
        assert services.auth_repository.get_user_id_by_email(TEST_USERS['alice']) is None


class TestLogin:
    """Tests for login."""

    def test_login_returns_session_and_stores_refresh_token(self, services, signup):
        created = signup('alice')
        session = services.auth_service.login(TEST_USERS['alice'], TEST_PASSWORD)

        assert session.id == created.id
        assert services.auth_repository.get_user_info(created.id).refresh_token == session.refresh_token

    def test_wrong_password(self, services, signup):
        signup('alice')
        code = error_code(services.auth_service.login, TEST_USERS['alice'], 'WrongPass123')
        assert code == LoginErrorCode.WRONG_CREDENTIALS

    def test_unknown_email(self, services):
        code = error_code(services.auth_service.login, 'nobody@example.com', TEST_PASSWORD)
        assert code == LoginErrorCode.WRONG_CREDENTIALS


class TestRefresh:
    """Only the most recently issued refresh token is accepted."""

    def test_refresh_rotates_token(self, services, signup):
        created = signup('alice')
        refreshed = services.auth_service.refresh(created.refresh_token)

        assert refreshed.id == created.id
        assert refreshed.refresh_token != created.refresh_token
        code = error_code(services.auth_service.refresh, created.refresh_token)
        assert code == RefreshErrorCode.TOKEN_IS_WRONG

        # the new token keeps working
        services.auth_service.refresh(refreshed.refresh_token)

    def test_login_invalidates_previous_refresh_token(self, services, signup):
        created = signup('alice')
        services.auth_service.login(TEST_USERS['alice'], TEST_PASSWORD)

        code = error_code(services.auth_service.refresh, created.refresh_token)
        assert code == RefreshErrorCode.TOKEN_IS_WRONG

    def test_logout_invalidates_refresh_token(self, services, signup):
        created = signup('alice')
        services.auth_service.logout(created.id)

        code = error_code(services.auth_service.refresh, created.refresh_token)
        assert code == RefreshErrorCode.TOKEN_IS_WRONG

    def test_access_token_is_not_a_refresh_token(self, services, signup):
        created = signup('alice')
        code = error_code(services.auth_service.refresh, created.access_token)
        assert code == RefreshErrorCode.TOKEN_IS_WRONG

    def test_unknown_subject(self, services):
        token = services.jwt_service.issue_refresh_token('no-such-user')
        assert error_code(services.auth_service.refresh, token) == RefreshErrorCode.TOKEN_IS_WRONG


class TestUpdateEmail:
    """Tests for email updates."""

    def test_update_email_resets_verification(self, services, signup):
        created = signup('alice')
        services.auth_repository.mark_user_email_validated(created.id).perform()

        session = services.auth_service.update_email('alice2@example.com', created.id)

        info = services.auth_repository.get_user_info(created.id)
        assert info.email == 'alice2@example.com'
        assert info.email_verified is False
        assert info.refresh_token == session.refresh_token

    def test_email_taken(self, services, signup):
        alice = signup('alice')
        signup('bob')
        code = error_code(services.auth_service.update_email, TEST_USERS['bob'], alice.id)
        assert code == UpdateEmailErrorCode.ALREADY_TAKEN

    def test_wrong_format(self, services, signup):
        alice = signup('alice')
        code = error_code(services.auth_service.update_email, 'nope', alice.id)
        assert code == UpdateEmailErrorCode.WRONG_FORMAT

    def test_email_rolled_back_when_token_rotation_fails(self, services, signup):
        created = signup('alice')
        services.auth_repository.mark_user_email_validated(created.id).perform()

        failing = MutationWorkItem.failed(RuntimeError('token store is down'))
        with patch.object(services.auth_repository, 'update_refresh_token', return_value=failing):
            code = error_code(services.auth_service.update_email, 'alice2@example.com', created.id)

        assert code == UpdateEmailErrorCode.INTERNAL
        info = services.auth_repository.get_user_info(created.id)
        assert info.email == TEST_USERS['alice']
        assert info.email_verified is True
        assert info.refresh_token == created.refresh_token


class TestUpdatePassword:
    """Tests for password updates."""

    def test_update_password(self, services, signup):
        created = signup('alice')
        services.auth_service.update_password(TEST_PASSWORD, 'NewPass456', created.id)

        assert services.auth_repository.check_credentials(TEST_USERS['alice'], 'NewPass456')
        assert not services.auth_repository.check_credentials(TEST_USERS['alice'], TEST_PASSWORD)

    def test_old_password_is_wrong(self, services, signup):
        created = signup('alice')
        code = error_code(services.auth_service.update_password, 'WrongPass1', 'NewPass456', created.id)
        assert code == UpdatePasswordErrorCode.OLD_PASSWORD_IS_WRONG

    def test_new_password_wrong_format(self, services, signup):
        created = signup('alice')
        code = error_code(services.auth_service.update_password, TEST_PASSWORD, 'weak', created.id)
        assert code == UpdatePasswordErrorCode.WRONG_FORMAT

    def test_password_rolled_back_when_token_rotation_fails(self, services, signup):
        created = signup('alice')
        failing = MutationWorkItem.failed(RuntimeError('token store is down'))
        with patch.object(services.auth_repository, 'update_refresh_token', return_value=failing):
            code = error_code(services.auth_service.update_password, TEST_PASSWORD, 'NewPass456', created.id)

        assert code == UpdatePasswordErrorCode.INTERNAL
        assert services.auth_repository.check_credentials(TEST_USERS['alice'], TEST_PASSWORD)


class TestPushToken:
    """Tests for push token registration."""

    def test_register_replaces_token(self, services, signup):
        created = signup('alice')
        services.auth_service.register_for_push_notifications('device-1', created.id)
        services.auth_service.register_for_push_notifications('device-2', created.id)

        assert services.push_tokens_repository.get_push_token(created.id) == 'device-2'
