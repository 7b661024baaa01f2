"""
Spendings service.

Authorizes and performs expense mutations and reads. After a successful add
or remove, every other share holder is notified through the push and
realtime notifiers (when configured); notifier failures never affect the
result of the operation.
"""
import logging
from enum import Enum

from sqlalchemy.exc import SQLAlchemyError

from repositories import RecordNotFound
from repositories.friends_repository import FriendStatus
from repositories.spendings_repository import IdentifiableExpense
from services.errors import ServiceError
from services.locks import KeyedLocks

logger = logging.getLogger(__name__)


class AddExpenseErrorCode(Enum):
    NO_SUCH_USER = 'no_such_user'
    NOT_YOUR_EXPENSE = 'not_your_expense'
    INTERNAL = 'internal'


class RemoveExpenseErrorCode(Enum):
    EXPENSE_NOT_FOUND = 'expense_not_found'
    NOT_A_FRIEND = 'not_a_friend'
    NOT_YOUR_EXPENSE = 'not_your_expense'
    INTERNAL = 'internal'


class GetExpenseErrorCode(Enum):
    EXPENSE_NOT_FOUND = 'expense_not_found'
    NOT_YOUR_EXPENSE = 'not_your_expense'
    INTERNAL = 'internal'


class GetExpensesErrorCode(Enum):
    INTERNAL = 'internal'


class GetBalanceErrorCode(Enum):
    INTERNAL = 'internal'


class SpendingsService:
    """Expense operations on behalf of an authenticated actor."""

    def __init__(self, spendings_repository, users_repository, friends_repository,
                 push_service=None, realtime_events=None, locks=None):
        self.spendings_repository = spendings_repository
        self.users_repository = users_repository
        self.friends_repository = friends_repository
        self.push_service = push_service
        self.realtime_events = realtime_events
        self.locks = locks or KeyedLocks()

    def add_expense(self, expense, actor):
        """Store an expense the actor takes part in.

        Returns:
            IdentifiableExpense: the stored expense with its new id.
        """
        internal = AddExpenseErrorCode.INTERNAL
        logger.info(f"add_expense: start[actor={actor}]")
        if actor not in expense.counterparties:
            logger.info(f"add_expense: actor is not a party[actor={actor}]")
            raise ServiceError(AddExpenseErrorCode.NOT_YOUR_EXPENSE)

        counterparties = set(expense.counterparties)
        try:
            known = {profile.user_id for profile in self.users_repository.get_users(counterparties)}
        except SQLAlchemyError as e:
            logger.error(f"add_expense: cannot get users: {e}")
            raise ServiceError(internal, str(e))
        missing = counterparties - known
        if missing:
            logger.info(f"add_expense: unknown counterparties {sorted(missing)}")
            raise ServiceError(AddExpenseErrorCode.NO_SUCH_USER, f'no such user: {sorted(missing)[0]}')

        try:
            expense_id = self.spendings_repository.add_expense(expense).perform()
        except Exception as e:
            logger.error(f"add_expense: storing expense failed: {e}")
            raise ServiceError(internal, str(e))

        stored = IdentifiableExpense(id=expense_id, expense=expense)
        logger.info(f"add_expense: success[id={expense_id}]")
        self._notify_parties(stored, actor, removed=False)
        return stored

    def remove_expense(self, expense_id, actor):
        """Remove an expense; the actor must be friends with every other party.

        Returns:
            IdentifiableExpense: the removed expense.
        """
        internal = RemoveExpenseErrorCode.INTERNAL
        logger.info(f"remove_expense: start[id={expense_id} actor={actor}]")
        with self.locks.hold(expense_id):
            try:
                existing = self.spendings_repository.get_expense(expense_id)
            except SQLAlchemyError as e:
                logger.error(f"remove_expense: cannot get expense: {e}")
                raise ServiceError(internal, str(e))
            if existing is None:
                raise ServiceError(RemoveExpenseErrorCode.EXPENSE_NOT_FOUND)
            if actor not in existing.expense.counterparties:
                raise ServiceError(RemoveExpenseErrorCode.NOT_YOUR_EXPENSE)

            try:
                strangers = [
                    other for other in sorted(set(existing.expense.counterparties) - {actor})
                    if self.friends_repository.get_status(actor, other) != FriendStatus.FRIENDS
                ]
            except SQLAlchemyError as e:
                logger.error(f"remove_expense: cannot get friend statuses: {e}")
                raise ServiceError(internal, str(e))
            if strangers:
                logger.info(f"remove_expense: not friends with {strangers}")
                raise ServiceError(RemoveExpenseErrorCode.NOT_A_FRIEND, f'not a friend: {strangers[0]}')

            try:
                self.spendings_repository.remove_expense(expense_id).perform()
            except RecordNotFound as e:
                raise ServiceError(RemoveExpenseErrorCode.EXPENSE_NOT_FOUND, str(e))
            except Exception as e:
                logger.error(f"remove_expense: removing expense failed: {e}")
                raise ServiceError(internal, str(e))

        logger.info(f"remove_expense: success[id={expense_id}]")
        self._notify_parties(existing, actor, removed=True)
        return existing

    def get_expense(self, expense_id, actor):
        logger.info(f"get_expense: start[id={expense_id}]")
        try:
            existing = self.spendings_repository.get_expense(expense_id)
        except SQLAlchemyError as e:
            logger.error(f"get_expense: cannot get expense: {e}")
            raise ServiceError(GetExpenseErrorCode.INTERNAL, str(e))
        if existing is None:
            raise ServiceError(GetExpenseErrorCode.EXPENSE_NOT_FOUND)
        if actor not in existing.expense.counterparties:
            raise ServiceError(GetExpenseErrorCode.NOT_YOUR_EXPENSE)
        return existing

    def get_expenses_with(self, counterparty, actor):
        """All expenses shared by the actor and `counterparty`."""
        try:
            return self.spendings_repository.get_expenses_between(actor, counterparty)
        except SQLAlchemyError as e:
            logger.error(f"get_expenses_with: cannot get expenses: {e}")
            raise ServiceError(GetExpensesErrorCode.INTERNAL, str(e))

    def get_balance(self, actor):
        try:
            return self.spendings_repository.get_balance(actor)
        except SQLAlchemyError as e:
            logger.error(f"get_balance: cannot get balance: {e}")
            raise ServiceError(GetBalanceErrorCode.INTERNAL, str(e))

    def _notify_parties(self, stored, actor, removed):
        recipients = sorted(set(stored.expense.counterparties) - {actor})
        for recipient in recipients:
            if self.realtime_events is not None:
                self.realtime_events.expenses_updated(recipient, actor)
                self.realtime_events.counterparties_updated(recipient)
            if self.push_service is not None:
                if removed:
                    self.push_service.expense_removed(recipient, stored, actor)
                else:
                    self.push_service.new_expense_received(recipient, stored, actor)
        if self.realtime_events is not None:
            self.realtime_events.counterparties_updated(actor)
