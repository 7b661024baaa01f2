"""
Configuration classes for the ledger service.

Usage:
    from config import config
    app.config.from_object(config[config_name])
"""
import os
from datetime import timedelta


class Config:
    """Base configuration with defaults."""

    # Security
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')

    # Database
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # JWT (access and refresh tokens are signed with different secrets)
    JWT_ACCESS_TOKEN_SECRET = os.environ.get('JWT_ACCESS_TOKEN_SECRET', 'dev-access-token-secret')
    JWT_REFRESH_TOKEN_SECRET = os.environ.get('JWT_REFRESH_TOKEN_SECRET', 'dev-refresh-token-secret')
    JWT_ACCESS_TOKEN_LIFETIME_HOURS = int(os.environ.get('JWT_ACCESS_TOKEN_LIFETIME_HOURS', 1))
    JWT_REFRESH_TOKEN_LIFETIME_HOURS = int(os.environ.get('JWT_REFRESH_TOKEN_LIFETIME_HOURS', 24 * 30))

    # Email confirmation codes
    CONFIRMATION_CODE_LIFETIME = timedelta(hours=1)

    # Push notifications (logged only when no gateway is configured)
    PUSH_GATEWAY_URL = os.environ.get('PUSH_GATEWAY_URL')
    PUSH_GATEWAY_TIMEOUT = 5

    # Long poll
    LONG_POLL_TIMEOUT_SECONDS = int(os.environ.get('LONG_POLL_TIMEOUT_SECONDS', 30))

    # Rate limiting (Flask-Limiter config keys)
    RATELIMIT_DEFAULT = "1000 per day; 200 per hour"
    # Use Redis for persistent rate limiting if REDIS_URL is set, otherwise memory
    RATELIMIT_STORAGE_URI = os.environ.get('REDIS_URL', 'memory://')

    # Mail configuration (confirmation codes)
    MAIL_SERVER = os.environ.get('MAIL_SERVER', 'smtp.gmail.com')
    MAIL_PORT = int(os.environ.get('MAIL_PORT', 587))
    MAIL_USE_TLS = os.environ.get('MAIL_USE_TLS', 'True').lower() == 'true'
    MAIL_USERNAME = os.environ.get('MAIL_USERNAME')
    MAIL_PASSWORD = os.environ.get('MAIL_PASSWORD')
    MAIL_DEFAULT_SENDER = os.environ.get('MAIL_DEFAULT_SENDER', 'noreply@shared-ledger.app')
    # Suppress email sending if the mail account is not configured
    MAIL_SUPPRESS_SEND = not os.environ.get('MAIL_USERNAME')


class DevelopmentConfig(Config):
    """Development configuration."""

    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        'DATABASE_URL',
        'sqlite:///ledger.db'
    )


class ProductionConfig(Config):
    """Production configuration."""

    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        'DATABASE_URL',
        # Note: 4 slashes = sqlite:// + absolute path /data/ledger.db
        'sqlite:////data/ledger.db'
    )


class TestingConfig(Config):
    """Testing configuration."""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'

    # Disable rate limiting for tests
    RATELIMIT_ENABLED = False

    MAIL_SUPPRESS_SEND = True
    PUSH_GATEWAY_URL = None
    LONG_POLL_TIMEOUT_SECONDS = 0


# Configuration dictionary for easy access
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig,
}


def get_config_name():
    """Get configuration name from environment."""
    flask_env = os.environ.get('FLASK_ENV', 'development')
    if flask_env == 'production':
        return 'production'
    elif os.environ.get('TESTING'):
        return 'testing'
    return 'development'
