"""
Email and password format rules.
"""
import re

# Email validation regex pattern
EMAIL_REGEX = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')

MAX_DISPLAY_NAME_LENGTH = 100


class FormatError(ValueError):
    """Raised when a value does not have the expected format."""
    pass


class FormatValidationService:
    """Validates user-supplied credentials."""

    def validate_email_format(self, email):
        if not email or EMAIL_REGEX.match(email) is None:
            raise FormatError('Please enter a valid email address')

    def validate_password_format(self, password):
        if len(password) < 8:
            raise FormatError('Password must be at least 8 characters')
        if len(password) > 128:
            raise FormatError('Password is too long (max 128 characters)')
        if not any(c.isupper() for c in password):
            raise FormatError('Password must contain at least one uppercase letter')
        if not any(c.islower() for c in password):
            raise FormatError('Password must contain at least one lowercase letter')
        if not any(c.isdigit() for c in password):
            raise FormatError('Password must contain at least one number')

    def validate_display_name_format(self, name):
        if not name or not name.strip():
            raise FormatError('Name is required')
        if len(name) > MAX_DISPLAY_NAME_LENGTH:
            raise FormatError(f'Name is too long (max {MAX_DISPLAY_NAME_LENGTH} characters)')
