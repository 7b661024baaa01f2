"""
JWT token service.

Access and refresh tokens are signed with different secrets and carry a
`type` claim, so a token of one kind never validates as the other. Every
token carries a random `jti`, so two tokens issued in the same second for
the same subject still differ.
"""
import logging
import uuid
from datetime import datetime, timedelta
from enum import Enum

import jwt

logger = logging.getLogger(__name__)

JWT_ALGORITHM = 'HS256'
ACCESS_TOKEN_TYPE = 'access'
REFRESH_TOKEN_TYPE = 'refresh'


class JwtErrorCode(Enum):
    TOKEN_EXPIRED = 'token_expired'
    TOKEN_INVALID = 'token_invalid'
    INTERNAL = 'internal'


class JwtError(Exception):
    """Raised when a token cannot be issued or validated."""

    def __init__(self, code, description=None):
        super().__init__(description or code.value)
        self.code = code


class JwtService:
    """Issues and validates access/refresh tokens.

    Args:
        access_secret: Secret used to sign access tokens
        refresh_secret: Secret used to sign refresh tokens
        access_lifetime (timedelta): Access token lifetime
        refresh_lifetime (timedelta): Refresh token lifetime
        now: Callable returning the current UTC time, used as the issue time
    """

    def __init__(self, access_secret, refresh_secret, access_lifetime, refresh_lifetime, now=None):
        self.access_secret = access_secret
        self.refresh_secret = refresh_secret
        self.access_lifetime = access_lifetime
        self.refresh_lifetime = refresh_lifetime
        self.now = now or datetime.utcnow

    @classmethod
    def from_config(cls, config, now=None):
        return cls(
            access_secret=config['JWT_ACCESS_TOKEN_SECRET'],
            refresh_secret=config['JWT_REFRESH_TOKEN_SECRET'],
            access_lifetime=timedelta(hours=config['JWT_ACCESS_TOKEN_LIFETIME_HOURS']),
            refresh_lifetime=timedelta(hours=config['JWT_REFRESH_TOKEN_LIFETIME_HOURS']),
            now=now,
        )

    def issue_access_token(self, subject):
        return self._issue(subject, ACCESS_TOKEN_TYPE, self.access_secret, self.access_lifetime)

    def issue_refresh_token(self, subject):
        return self._issue(subject, REFRESH_TOKEN_TYPE, self.refresh_secret, self.refresh_lifetime)

    def validate_access_token(self, token):
        self._decode(token, ACCESS_TOKEN_TYPE, self.access_secret)

    def validate_refresh_token(self, token):
        self._decode(token, REFRESH_TOKEN_TYPE, self.refresh_secret)

    def get_access_token_subject(self, token):
        return self._decode(token, ACCESS_TOKEN_TYPE, self.access_secret)['sub']

    def get_refresh_token_subject(self, token):
        return self._decode(token, REFRESH_TOKEN_TYPE, self.refresh_secret)['sub']

    def _issue(self, subject, token_type, secret, lifetime):
        issued_at = self.now()
        payload = {
            'sub': str(subject),
            'type': token_type,
            'jti': str(uuid.uuid4()),
            'iat': issued_at,
            'exp': issued_at + lifetime,
        }
        try:
            return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)
        except (jwt.PyJWTError, TypeError, ValueError) as e:
            logger.error(f"Failed to issue {token_type} token: {e}")
            raise JwtError(JwtErrorCode.INTERNAL, str(e))

    def _decode(self, token, token_type, secret):
        try:
            payload = jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])
        except jwt.ExpiredSignatureError:
            raise JwtError(JwtErrorCode.TOKEN_EXPIRED, f'{token_type} token expired')
        except jwt.InvalidTokenError as e:
            raise JwtError(JwtErrorCode.TOKEN_INVALID, f'invalid {token_type} token: {e}')

        if payload.get('type') != token_type:
            raise JwtError(JwtErrorCode.TOKEN_INVALID, f'not a {token_type} token')
        if not payload.get('sub'):
            raise JwtError(JwtErrorCode.TOKEN_INVALID, 'token has no subject')
        return payload
