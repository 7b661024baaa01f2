"""
Cleanup service for scheduled maintenance tasks.

Handles:
- Expired email confirmation code cleanup
"""
import logging

from repositories.verification_repository import VerificationRepository

logger = logging.getLogger(__name__)


def cleanup_expired_confirmation_codes(lifetime):
    """Delete confirmation codes older than their lifetime.

    This is a global cleanup: codes are keyed by email, and expired codes
    are already rejected on confirmation, so removing them is safe at any time.

    Args:
        lifetime (timedelta): Age after which a code is expired.

    Returns:
        Number of codes deleted.
    """
    count = VerificationRepository().remove_expired(lifetime)
    if count > 0:
        logger.info(f"Cleaned up {count} expired confirmation codes")
    return count


def run_cleanup_with_app(app):
    """Run cleanup tasks with a specific Flask app context.

    Used by the CLI command and the scheduler where we need to pass the app
    explicitly.

    Args:
        app: Flask application instance.

    Returns:
        Dict with cleanup results.
    """
    logger.info("Starting daily cleanup tasks")
    with app.app_context():
        codes_cleaned = cleanup_expired_confirmation_codes(app.config['CONFIRMATION_CODE_LIFETIME'])
    logger.info(f"Daily cleanup complete: {codes_cleaned} confirmation codes")
    return {'codes_cleaned': codes_cleaned}
