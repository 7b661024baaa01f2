"""
Email service for sending email confirmation codes.
"""
import logging

from flask import current_app
from flask_mail import Message

from extensions import mail

logger = logging.getLogger(__name__)


def init_mail(app):
    """Initialize Flask-Mail with app configuration."""
    mail.init_app(app)
    return mail


def send_confirmation_code_email(email, code):
    """
    Send an email confirmation code.

    Args:
        email (str): Recipient address
        code (str): The confirmation code

    Returns:
        bool: True if email sent successfully, False otherwise
    """
    lifetime = current_app.config['CONFIRMATION_CODE_LIFETIME']
    minutes = int(lifetime.total_seconds() // 60)
    try:
        subject = "Your Shared Ledger confirmation code"

        text_body = f"""
Your confirmation code is: {code}

Enter this code in the app to confirm your email address.
The code expires in {minutes} minutes.

If you didn't request this code, you can safely ignore this email.
"""

        html_body = f"""
<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; color: #333;">
    <h2>Confirm your email</h2>
    <p>Your confirmation code is:</p>
    <p style="font-size: 28px; font-weight: 600; letter-spacing: 4px;">{code}</p>
    <p>The code expires in {minutes} minutes.</p>
    <p style="font-size: 12px; color: #6b7280;">If you didn't request this code, you can safely ignore this email.</p>
</body>
</html>
"""

        msg = Message(
            subject=subject,
            recipients=[email],
            body=text_body,
            html=html_body
        )

        # Check if mail sending is suppressed (development without SMTP config)
        if current_app.config.get('MAIL_SUPPRESS_SEND'):
            logger.info(f"[EMAIL SUPPRESSED] Would send confirmation code to: {email}")
            return True

        mail.send(msg)
        logger.info(f"[EMAIL] Confirmation code sent to: {email}")
        return True

    except Exception as e:
        logger.exception(f"[EMAIL ERROR] Failed to send confirmation code: {e}")
        return False


def is_mail_configured(app):
    """Check if email is properly configured."""
    return bool(app.config.get('MAIL_USERNAME'))
