"""
Spendings API routes.

Endpoints:
- POST /api/v1/spendings/addExpense - Store a new expense
- POST /api/v1/spendings/removeExpense - Remove an expense
- GET /api/v1/spendings/getExpense?expenseId=... - Get one expense
- GET /api/v1/spendings/getExpenses?counterparty=... - Expenses shared with a counterparty
- GET /api/v1/spendings/getBalance - Balances with every counterparty
"""
import logging

from flask import g

from api_decorators import get_services, jwt_required
from blueprints.api_v1 import api_v1_bp
from blueprints.api_v1.responses import (
    RequestError,
    json_body,
    require_arg,
    require_string,
    service_failure,
    success,
)
from repositories.spendings_repository import Expense
from services.errors import ServiceError
from services.spendings_service import (
    AddExpenseErrorCode,
    GetExpenseErrorCode,
    RemoveExpenseErrorCode,
)

logger = logging.getLogger(__name__)

ADD_EXPENSE_STATUSES = {
    AddExpenseErrorCode.NO_SUCH_USER: (409, 'no_such_user'),
    AddExpenseErrorCode.NOT_YOUR_EXPENSE: (409, 'is_not_your_expense'),
}
REMOVE_EXPENSE_STATUSES = {
    RemoveExpenseErrorCode.EXPENSE_NOT_FOUND: (409, 'expense_not_found'),
    RemoveExpenseErrorCode.NOT_A_FRIEND: (409, 'not_a_friend'),
    RemoveExpenseErrorCode.NOT_YOUR_EXPENSE: (409, 'is_not_your_expense'),
}
GET_EXPENSE_STATUSES = {
    GetExpenseErrorCode.EXPENSE_NOT_FOUND: (409, 'expense_not_found'),
    GetExpenseErrorCode.NOT_YOUR_EXPENSE: (409, 'is_not_your_expense'),
}


def _parse_expense(data):
    payload = data.get('expense')
    if not isinstance(payload, dict):
        raise RequestError('expense is required')
    try:
        return Expense.from_dict(payload)
    except (KeyError, TypeError, ValueError) as e:
        raise RequestError(f'Invalid expense: {e}')


@api_v1_bp.route('/spendings/addExpense', methods=['POST'])
@jwt_required
def api_add_expense():
    """Store a new expense.

    Request body:
        {
            "expense": {
                "timestamp": 1700000000,
                "details": "Dinner",
                "total": 900,
                "currency": "USD",
                "shares": [{"userId": "...", "cost": 450}, {"userId": "...", "cost": -450}]
            }
        }

    Returns:
        {"ok": true, "value": {"id": "...", "expense": {...}}}
    """
    expense = _parse_expense(json_body())
    try:
        stored = get_services().spendings_service.add_expense(expense, g.current_user_id)
    except ServiceError as e:
        return service_failure(e, ADD_EXPENSE_STATUSES)
    return success(stored.to_dict())


@api_v1_bp.route('/spendings/removeExpense', methods=['POST'])
@jwt_required
def api_remove_expense():
    """Remove an expense.

    Request body:
        {"expenseId": "..."}

    Returns:
        {"ok": true, "value": {"id": "...", "expense": {...}}}
    """
    expense_id = require_string(json_body(), 'expenseId')
    try:
        removed = get_services().spendings_service.remove_expense(expense_id, g.current_user_id)
    except ServiceError as e:
        return service_failure(e, REMOVE_EXPENSE_STATUSES)
    return success(removed.to_dict())


@api_v1_bp.route('/spendings/getExpense', methods=['GET'])
@jwt_required
def api_get_expense():
    expense_id = require_arg('expenseId')
    try:
        expense = get_services().spendings_service.get_expense(expense_id, g.current_user_id)
    except ServiceError as e:
        return service_failure(e, GET_EXPENSE_STATUSES)
    return success(expense.to_dict())


@api_v1_bp.route('/spendings/getExpenses', methods=['GET'])
@jwt_required
def api_get_expenses():
    """All expenses shared with a counterparty, oldest first."""
    counterparty = require_arg('counterparty')
    try:
        expenses = get_services().spendings_service.get_expenses_with(counterparty, g.current_user_id)
    except ServiceError as e:
        return service_failure(e, {})
    return success({'expenses': [expense.to_dict() for expense in expenses]})


@api_v1_bp.route('/spendings/getBalance', methods=['GET'])
@jwt_required
def api_get_balance():
    """Per-currency balance with every counterparty.

    Returns:
        {"ok": true, "value": {"balances": [{"counterparty": "...", "currencies": {"USD": 900}}]}}
    """
    try:
        balances = get_services().spendings_service.get_balance(g.current_user_id)
    except ServiceError as e:
        return service_failure(e, {})
    return success({'balances': [balance.to_dict() for balance in balances]})
