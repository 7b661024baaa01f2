"""
Tests for the spendings service.
"""
import pytest
from unittest.mock import MagicMock, patch

from sqlalchemy.exc import OperationalError

from repositories import MutationWorkItem
from repositories.spendings_repository import Balance, Expense, ShareOfExpense
from services.errors import ServiceError
from services.spendings_service import (
    AddExpenseErrorCode,
    GetBalanceErrorCode,
    GetExpenseErrorCode,
    RemoveExpenseErrorCode,
)


pytestmark = pytest.mark.unit


def split(*shares, currency='USD'):
    return Expense(
        timestamp=1,
        details='',
        total=0,
        currency=currency,
        shares=[ShareOfExpense(counterparty, cost) for counterparty, cost in shares],
    )


@pytest.fixture
def users(signup):
    return {name: signup(name).id for name in ('alice', 'bob', 'charlie')}


def error_code(call, *args):
    with pytest.raises(ServiceError) as exc_info:
        call(*args)
    return exc_info.value.code


class TestAddExpense:
    """Tests for add_expense."""

    def test_add_expense(self, services, users):
        alice, bob = users['alice'], users['bob']
        stored = services.spendings_service.add_expense(split((alice, 456), (bob, -456)), alice)

        assert services.spendings_service.get_expense(stored.id, bob) == stored
        assert services.spendings_service.get_balance(alice) == [Balance(bob, {'USD': 456})]

    def test_actor_must_be_a_party(self, services, users):
        code = error_code(
            services.spendings_service.add_expense,
            split((users['bob'], 1), (users['charlie'], -1)),
            users['alice'],
        )
        assert code == AddExpenseErrorCode.NOT_YOUR_EXPENSE

    def test_unknown_counterparty(self, services, users):
        code = error_code(
            services.spendings_service.add_expense,
            split((users['alice'], 1), ('ghost', -1)),
            users['alice'],
        )
        assert code == AddExpenseErrorCode.NO_SUCH_USER
        assert services.spendings_service.get_balance(users['alice']) == []

    def test_parties_are_notified(self, services, users):
        alice, bob, charlie = users['alice'], users['bob'], users['charlie']
        push = MagicMock()
        services.spendings_service.push_service = push

        stored = services.spendings_service.add_expense(split((alice, 2), (bob, -1), (charlie, -1)), alice)

        recipients = sorted(call.args[0] for call in push.new_expense_received.call_args_list)
        assert recipients == sorted([bob, charlie])
        assert push.new_expense_received.call_args_list[0].args[1] == stored
        events = services.realtime_events.pending(bob)
        assert {'type': 'expenses_updated', 'counterparty': alice} in events
        assert services.realtime_events.pending(alice) == [{'type': 'counterparties_updated'}]

    def test_storage_failure_is_internal(self, services, users):
        alice, bob = users['alice'], users['bob']
        failing = MutationWorkItem.failed(OperationalError('insert', {}, Exception('disk full')))
        with patch.object(services.spendings_repository, 'add_expense', return_value=failing):
            code = error_code(services.spendings_service.add_expense, split((alice, 1), (bob, -1)), alice)
        assert code == AddExpenseErrorCode.INTERNAL


class TestRemoveExpense:
    """Tests for remove_expense."""

    def test_remove_requires_friendship_with_every_party(self, services, users, make_friends):
        alice, bob, charlie = users['alice'], users['bob'], users['charlie']
        stored = services.spendings_service.add_expense(split((alice, 2), (bob, -1), (charlie, -1)), alice)
        make_friends(alice, bob)

        code = error_code(services.spendings_service.remove_expense, stored.id, alice)
        assert code == RemoveExpenseErrorCode.NOT_A_FRIEND

        make_friends(charlie, alice)
        removed = services.spendings_service.remove_expense(stored.id, alice)
        assert removed == stored
        assert services.spendings_service.get_balance(alice) == []

    def test_expense_not_found(self, services, users):
        code = error_code(services.spendings_service.remove_expense, 'missing', users['alice'])
        assert code == RemoveExpenseErrorCode.EXPENSE_NOT_FOUND

    def test_not_your_expense(self, services, users, make_friends):
        alice, bob, charlie = users['alice'], users['bob'], users['charlie']
        stored = services.spendings_service.add_expense(split((alice, 1), (bob, -1)), alice)
        make_friends(charlie, alice)

        code = error_code(services.spendings_service.remove_expense, stored.id, charlie)
        assert code == RemoveExpenseErrorCode.NOT_YOUR_EXPENSE

    def test_round_trip_restores_balances(self, services, users, make_friends):
        alice, bob = users['alice'], users['bob']
        make_friends(alice, bob)
        services.spendings_service.add_expense(split((alice, 456), (bob, -456)), alice)
        services.spendings_service.add_expense(split((bob, -444), (alice, 444)), bob)
        before = (
            services.spendings_service.get_balance(alice),
            services.spendings_service.get_expenses_with(bob, alice),
        )
        assert before[0] == [Balance(bob, {'USD': 900})]

        extra = services.spendings_service.add_expense(split((alice, -5), (bob, 5)), bob)
        services.spendings_service.remove_expense(extra.id, alice)

        after = (
            services.spendings_service.get_balance(alice),
            services.spendings_service.get_expenses_with(bob, alice),
        )
        assert after == before
        assert services.spendings_service.get_balance(bob) == [Balance(alice, {'USD': -900})]


class TestReads:
    """Tests for get_expense and get_balance."""

    def test_get_expense_of_others(self, services, users):
        alice, bob = users['alice'], users['bob']
        stored = services.spendings_service.add_expense(split((alice, 1), (bob, -1)), alice)

        code = error_code(services.spendings_service.get_expense, stored.id, users['charlie'])
        assert code == GetExpenseErrorCode.NOT_YOUR_EXPENSE

    def test_get_missing_expense(self, services, users):
        code = error_code(services.spendings_service.get_expense, 'missing', users['alice'])
        assert code == GetExpenseErrorCode.EXPENSE_NOT_FOUND

    def test_balance_storage_failure_is_internal(self, services, users):
        with patch.object(
            services.spendings_repository, 'get_balance',
            side_effect=OperationalError('select', {}, Exception('locked')),
        ):
            code = error_code(services.spendings_service.get_balance, users['alice'])
        assert code == GetBalanceErrorCode.INTERNAL
