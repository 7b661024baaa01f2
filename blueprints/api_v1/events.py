"""
Realtime events API route.

Endpoints:
- GET /api/v1/events/poll - Long poll for pending events
"""
from flask import current_app, g

from api_decorators import get_services, jwt_required
from blueprints.api_v1 import api_v1_bp
from blueprints.api_v1.responses import success


@api_v1_bp.route('/events/poll', methods=['GET'])
@jwt_required
def api_poll_events():
    """Wait for events addressed to the current user.

    Returns immediately when events are pending, otherwise after at most
    LONG_POLL_TIMEOUT_SECONDS with an empty list.

    Returns:
        {"ok": true, "value": {"events": [{"type": "expenses_updated", ...}]}}
    """
    timeout = current_app.config['LONG_POLL_TIMEOUT_SECONDS']
    events = get_services().realtime_events.poll(g.current_user_id, timeout)
    return success({'events': events})
