"""
Response envelope for the ledger API.

Success: {"ok": true, "value": ...} (value omitted for void operations)
Failure: {"ok": false, "error": {"code": "...", "description": "..."}}

The description is never sent for internal errors.
"""
import logging

from flask import jsonify, request

logger = logging.getLogger(__name__)

INTERNAL = 'internal'


class RequestError(ValueError):
    """Raised by route helpers when the request is malformed."""
    pass


def success(value=None, status=200):
    body = {'ok': True}
    if value is not None:
        body['value'] = value
    return jsonify(body), status


def failure(code, description=None, status=500):
    error = {'code': code}
    if description and code != INTERNAL:
        error['description'] = description
    return jsonify({'ok': False, 'error': error}), status


def bad_request(description):
    return failure('bad_request', description, 400)


def service_failure(error, statuses):
    """Translate a ServiceError using a per-operation mapping.

    Args:
        error: ServiceError raised by a service operation
        statuses: Dict of error code enum member -> (HTTP status, wire code).
            Codes not in the mapping answer 500 internal.
    """
    status, wire_code = statuses.get(error.code, (500, INTERNAL))
    if wire_code == INTERNAL:
        logger.error(f"{request.path}: internal error: {error.description}")
    return failure(wire_code, error.description, status)


def json_body():
    """Return the JSON object body of the request.

    Raises:
        RequestError: if the body is missing or not a JSON object.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise RequestError('Request body required')
    return data


def require_string(data, name):
    """Return a non-empty string field of `data`.

    Raises:
        RequestError: if the field is missing or not a string.
    """
    value = data.get(name)
    if not isinstance(value, str) or not value:
        raise RequestError(f'{name} is required')
    return value


def require_arg(name):
    value = request.args.get(name, '').strip()
    if not value:
        raise RequestError(f'{name} query parameter is required')
    return value


def list_arg(name):
    """Read a list query parameter given as repeated `name=` or comma-separated."""
    values = []
    for raw in request.args.getlist(name):
        values.extend(part.strip() for part in raw.split(',') if part.strip())
    return values
