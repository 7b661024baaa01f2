"""
Service layer for the ledger service.

Services encapsulate business logic separate from route handlers.
"""
from services.errors import ServiceError
from services.auth_service import AuthService, Session
from services.spendings_service import SpendingsService
from services.verification_service import VerificationService
from services.friends_service import FriendsService
from services.users_service import UsersService
from services.jwt_service import JwtService, JwtError, JwtErrorCode
from services.format_validation import FormatValidationService, FormatError
from services.push_service import PushService
from services.realtime_events import RealtimeEvents
from services.locks import KeyedLocks

__all__ = [
    'ServiceError',
    'AuthService',
    'Session',
    'SpendingsService',
    'VerificationService',
    'FriendsService',
    'UsersService',
    'JwtService',
    'JwtError',
    'JwtErrorCode',
    'FormatValidationService',
    'FormatError',
    'PushService',
    'RealtimeEvents',
    'KeyedLocks',
]
