"""
Email verification API routes.

Endpoints:
- PUT /api/v1/verification/sendEmailConfirmationCode - Email a confirmation code
- PUT /api/v1/verification/confirmEmail - Confirm the email with the code
"""
from flask import g

from extensions import limiter
from api_decorators import get_services, jwt_required
from blueprints.api_v1 import api_v1_bp
from blueprints.api_v1.responses import json_body, require_string, service_failure, success
from services.errors import ServiceError
from services.verification_service import ConfirmEmailErrorCode, SendConfirmationCodeErrorCode

SEND_CODE_STATUSES = {
    SendConfirmationCodeErrorCode.ALREADY_CONFIRMED: (409, 'already_confirmed'),
    SendConfirmationCodeErrorCode.NOT_DELIVERED: (503, 'not_delivered'),
}
CONFIRM_EMAIL_STATUSES = {
    ConfirmEmailErrorCode.WRONG_CONFIRMATION_CODE: (409, 'incorrect_credentials'),
}


@api_v1_bp.route('/verification/sendEmailConfirmationCode', methods=['PUT'])
@jwt_required
@limiter.limit("3 per minute")
def api_send_email_confirmation_code():
    try:
        get_services().verification_service.send_confirmation_code(g.current_user_id)
    except ServiceError as e:
        return service_failure(e, SEND_CODE_STATUSES)
    return success()


@api_v1_bp.route('/verification/confirmEmail', methods=['PUT'])
@jwt_required
def api_confirm_email():
    """Confirm the current user's email.

    Request body:
        {"code": "123456"}
    """
    code = require_string(json_body(), 'code').strip()
    try:
        get_services().verification_service.confirm_email(g.current_user_id, code)
    except ServiceError as e:
        return service_failure(e, CONFIRM_EMAIL_STATUSES)
    return success()
