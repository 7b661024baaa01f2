"""
API v1 Blueprint for the ledger service.

Provides JSON endpoints with JWT authentication for the mobile apps. Every
response uses the envelope in blueprints.api_v1.responses.
"""
from flask import Blueprint

from blueprints.api_v1.responses import RequestError, bad_request

api_v1_bp = Blueprint('api_v1', __name__, url_prefix='/api/v1')


@api_v1_bp.errorhandler(RequestError)
def handle_request_error(error):
    return bad_request(str(error))


# Import routes to register them with the blueprint
from blueprints.api_v1 import auth  # noqa: F401, E402
from blueprints.api_v1 import spendings  # noqa: F401, E402
from blueprints.api_v1 import verification  # noqa: F401, E402
from blueprints.api_v1 import friends  # noqa: F401, E402
from blueprints.api_v1 import users  # noqa: F401, E402
from blueprints.api_v1 import events  # noqa: F401, E402
