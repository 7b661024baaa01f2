"""
Main Flask application for the shared ledger service.
"""
import os
import logging
from types import SimpleNamespace

import click
from flask import Flask, request, redirect

from extensions import db, limiter, migrate
from email_service import init_mail, is_mail_configured
from config import config, get_config_name
from blueprints import register_blueprints
from repositories.auth_repository import AuthRepository
from repositories.users_repository import UsersRepository
from repositories.spendings_repository import SpendingsRepository
from repositories.friends_repository import FriendsRepository
from repositories.push_tokens_repository import PushTokensRepository
from repositories.verification_repository import VerificationRepository
from services import (
    AuthService,
    FormatValidationService,
    FriendsService,
    JwtService,
    KeyedLocks,
    PushService,
    RealtimeEvents,
    SpendingsService,
    UsersService,
    VerificationService,
)

# Import models so db.create_all() sees every table
import models  # noqa: F401

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def build_services(app):
    """Wire repositories and services for one app instance."""
    auth_repository = AuthRepository()
    users_repository = UsersRepository()
    spendings_repository = SpendingsRepository()
    friends_repository = FriendsRepository()
    push_tokens_repository = PushTokensRepository()
    verification_repository = VerificationRepository()

    jwt_service = JwtService.from_config(app.config)
    format_validation = FormatValidationService()
    locks = KeyedLocks()
    push_service = PushService(
        push_tokens_repository,
        gateway_url=app.config.get('PUSH_GATEWAY_URL'),
        timeout=app.config.get('PUSH_GATEWAY_TIMEOUT', 5),
    )
    realtime_events = RealtimeEvents()

    return SimpleNamespace(
        auth_repository=auth_repository,
        users_repository=users_repository,
        spendings_repository=spendings_repository,
        friends_repository=friends_repository,
        push_tokens_repository=push_tokens_repository,
        verification_repository=verification_repository,
        jwt_service=jwt_service,
        push_service=push_service,
        realtime_events=realtime_events,
        auth_service=AuthService(
            auth_repository, users_repository, push_tokens_repository,
            jwt_service, format_validation, locks,
        ),
        spendings_service=SpendingsService(
            spendings_repository, users_repository, friends_repository,
            push_service=push_service, realtime_events=realtime_events, locks=locks,
        ),
        verification_service=VerificationService(
            auth_repository, verification_repository, app.config['CONFIRMATION_CODE_LIFETIME'],
        ),
        friends_service=FriendsService(
            friends_repository, users_repository,
            push_service=push_service, realtime_events=realtime_events,
        ),
        users_service=UsersService(users_repository, auth_repository, format_validation),
    )


def register_security_middleware(app):
    @app.before_request
    def enforce_https():
        """Redirect HTTP to HTTPS in production."""
        if not app.debug and not app.testing:
            # Check X-Forwarded-Proto header (set by reverse proxies)
            if request.headers.get('X-Forwarded-Proto') == 'http':
                url = request.url.replace('http://', 'https://', 1)
                return redirect(url, code=301)

    @app.after_request
    def add_security_headers(response):
        """Add security headers to all responses."""
        # Prevent MIME type sniffing
        response.headers['X-Content-Type-Options'] = 'nosniff'

        # API responses are never framed or cached
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['Cache-Control'] = 'no-store'

        # Referrer policy
        response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'

        # Strict Transport Security (HTTPS only in production)
        if not app.debug and not app.testing:
            response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'

        return response


def register_commands(app):
    @app.cli.command('init-db')
    def init_db_command():
        """Initialize the database."""
        db.create_all()
        click.echo('Database initialized!')

    @app.cli.command('cleanup')
    def cleanup_command():
        """Remove expired email confirmation codes.

        Example:
            flask cleanup
        """
        from services.cleanup_service import run_cleanup_with_app

        results = run_cleanup_with_app(app)
        click.echo(f"Cleanup complete: {results['codes_cleaned']} confirmation codes")


def init_db(app):
    """Create database tables if they don't exist.

    Schema changes go through Flask-Migrate ('flask db migrate' / 'flask db upgrade').
    """
    with app.app_context():
        db.create_all()
    logger.info('Database tables created (if not already existing)')


def init_scheduler(app):
    """Initialize APScheduler for background cleanup tasks.

    Only runs outside debug/testing to avoid duplicate jobs during development.
    Passes the app explicitly to ensure proper Flask context in background threads.
    """
    if app.debug or app.testing:
        logger.info("Scheduler disabled in debug/testing mode")
        return None

    try:
        from apscheduler.schedulers.background import BackgroundScheduler
        from services.cleanup_service import run_cleanup_with_app

        scheduler = BackgroundScheduler()

        # Run cleanup at 2 AM UTC daily
        scheduler.add_job(
            func=lambda: run_cleanup_with_app(app),
            trigger='cron',
            hour=2,
            minute=0,
            id='daily_cleanup',
            replace_existing=True
        )

        scheduler.start()
        logger.info("Background scheduler started for cleanup tasks")
        return scheduler
    except Exception as e:
        logger.warning(f"Failed to initialize scheduler: {e}")
        return None


def create_app(config_name=None):
    """Application factory.

    Args:
        config_name: Key of config.config; defaults to get_config_name().
    """
    app = Flask(__name__)
    app.config.from_object(config[config_name or get_config_name()])

    # Initialize extensions with app
    db.init_app(app)
    migrate.init_app(app, db)  # Flask-Migrate for database migrations
    limiter.init_app(app)  # Reads RATELIMIT_* from app.config
    init_mail(app)  # Flask-Mail for confirmation codes
    if not is_mail_configured(app):
        logger.warning("MAIL_USERNAME is not set, confirmation codes will only be logged")

    register_blueprints(app)
    register_security_middleware(app)
    register_commands(app)

    app.extensions['ledger'] = build_services(app)

    init_db(app)
    app.extensions['ledger'].scheduler = init_scheduler(app)
    return app


app = create_app()


if __name__ == '__main__':
    # Get port from environment variable
    port = int(os.environ.get('PORT', 5001))

    # Allow disabling auto-reload for stable testing (NO_RELOAD=1 python app.py)
    use_reloader = os.environ.get('NO_RELOAD') != '1'

    # Debug mode is set by config (True for development, False for production)
    app.run(debug=app.debug, host='0.0.0.0', port=port, use_reloader=use_reloader)
