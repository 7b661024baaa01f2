"""
Unit tests for the JWT token service.
"""
import pytest
from datetime import datetime, timedelta

from services.jwt_service import JwtError, JwtErrorCode, JwtService


pytestmark = pytest.mark.unit

ACCESS_LIFETIME = timedelta(hours=1)
REFRESH_LIFETIME = timedelta(hours=720)


def make_service(issued_at=None):
    """Service whose tokens are issued at `issued_at` (default: now)."""
    now = (lambda: issued_at) if issued_at is not None else None
    return JwtService(
        access_secret='access-secret',
        refresh_secret='refresh-secret',
        access_lifetime=ACCESS_LIFETIME,
        refresh_lifetime=REFRESH_LIFETIME,
        now=now,
    )


class TestIssue:
    """Tests for issuing tokens."""

    def test_subject_round_trips(self):
        service = make_service()
        assert service.get_access_token_subject(service.issue_access_token('user-1')) == 'user-1'
        assert service.get_refresh_token_subject(service.issue_refresh_token('user-1')) == 'user-1'

    def test_tokens_for_same_subject_differ(self):
        service = make_service(issued_at=datetime.utcnow())
        assert service.issue_refresh_token('user-1') != service.issue_refresh_token('user-1')


class TestExpiry:
    """Tokens are valid until their lifetime passes."""

    def test_access_token_just_inside_lifetime_is_valid(self):
        issued_at = datetime.utcnow() - ACCESS_LIFETIME + timedelta(minutes=1)
        token = make_service(issued_at).issue_access_token('user-1')
        make_service().validate_access_token(token)

    def test_access_token_past_lifetime_is_expired(self):
        issued_at = datetime.utcnow() - ACCESS_LIFETIME - timedelta(hours=1)
        token = make_service(issued_at).issue_access_token('user-1')

        with pytest.raises(JwtError) as exc_info:
            make_service().validate_access_token(token)
        assert exc_info.value.code == JwtErrorCode.TOKEN_EXPIRED

    def test_refresh_token_just_inside_lifetime_is_valid(self):
        issued_at = datetime.utcnow() - REFRESH_LIFETIME + timedelta(minutes=1)
        token = make_service(issued_at).issue_refresh_token('user-1')
        make_service().validate_refresh_token(token)

    def test_refresh_token_past_lifetime_is_expired(self):
        issued_at = datetime.utcnow() - REFRESH_LIFETIME - timedelta(hours=1)
        token = make_service(issued_at).issue_refresh_token('user-1')

        with pytest.raises(JwtError) as exc_info:
            make_service().get_refresh_token_subject(token)
        assert exc_info.value.code == JwtErrorCode.TOKEN_EXPIRED


class TestTokenKinds:
    """Access and refresh tokens are not interchangeable."""

    def test_refresh_token_fails_access_validation(self):
        service = make_service()
        token = service.issue_refresh_token('user-1')

        with pytest.raises(JwtError) as exc_info:
            service.validate_access_token(token)
        assert exc_info.value.code == JwtErrorCode.TOKEN_INVALID

        with pytest.raises(JwtError) as exc_info:
            service.get_access_token_subject(token)
        assert exc_info.value.code == JwtErrorCode.TOKEN_INVALID

    def test_access_token_fails_refresh_validation(self):
        service = make_service()
        token = service.issue_access_token('user-1')

        with pytest.raises(JwtError) as exc_info:
            service.validate_refresh_token(token)
        assert exc_info.value.code == JwtErrorCode.TOKEN_INVALID

        with pytest.raises(JwtError) as exc_info:
            service.get_refresh_token_subject(token)
        assert exc_info.value.code == JwtErrorCode.TOKEN_INVALID

    def test_garbage_is_invalid(self):
        with pytest.raises(JwtError) as exc_info:
            make_service().validate_access_token('not-a-token')
        assert exc_info.value.code == JwtErrorCode.TOKEN_INVALID

    def test_token_signed_with_other_secret_is_invalid(self):
        other = JwtService('other', 'other', ACCESS_LIFETIME, REFRESH_LIFETIME)
        token = other.issue_access_token('user-1')

        with pytest.raises(JwtError) as exc_info:
            make_service().validate_access_token(token)
        assert exc_info.value.code == JwtErrorCode.TOKEN_INVALID
