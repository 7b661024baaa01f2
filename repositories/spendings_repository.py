"""
Expense ledger.

Stores expenses (zero-sum splits of a cost between counterparties) and
derives the per-currency balance between every pair of counterparties from
the stored shares.

Balance for (actor, other, currency) is the sum, over every expense in that
currency in which both actor and other hold a share, of the actor's own
share cost. It is recomputed from the shares on every query.
"""
import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import aliased

from extensions import db
from models import Expense as ExpenseRecord, ExpenseShare
from repositories import MutationWorkItem, RecordNotFound, commit

logger = logging.getLogger(__name__)


def _parse_int(value):
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f'expected an integer, got {value!r}')
    return value


def _parse_str(value):
    if not isinstance(value, str):
        raise ValueError(f'expected a string, got {value!r}')
    return value


@dataclass(frozen=True)
class ShareOfExpense:
    counterparty: str
    cost: int

    def to_dict(self):
        return {'userId': self.counterparty, 'cost': self.cost}

    @classmethod
    def from_dict(cls, data):
        return cls(counterparty=_parse_str(data['userId']), cost=_parse_int(data['cost']))


@dataclass(frozen=True)
class Expense:
    """A cost split between counterparties.

    Raises:
        ValueError: if the share costs do not sum to zero.
    """
    timestamp: int
    details: str
    total: int
    currency: str
    shares: Tuple[ShareOfExpense, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'shares', tuple(self.shares))
        if sum(share.cost for share in self.shares) != 0:
            raise ValueError('shares of an expense must sum to zero')

    @property
    def counterparties(self):
        return [share.counterparty for share in self.shares]

    def to_dict(self):
        return {
            'timestamp': self.timestamp,
            'details': self.details,
            'total': self.total,
            'currency': self.currency,
            'attachments': [],
            'shares': [share.to_dict() for share in self.shares],
        }

    @classmethod
    def from_dict(cls, data):
        """Build an expense from its JSON form.

        Raises:
            KeyError, TypeError, ValueError: on a malformed payload.
        """
        return cls(
            timestamp=_parse_int(data['timestamp']),
            details=_parse_str(data.get('details', '')),
            total=_parse_int(data['total']),
            currency=_parse_str(data['currency']),
            shares=[ShareOfExpense.from_dict(share) for share in data['shares']],
        )


@dataclass(frozen=True)
class IdentifiableExpense:
    id: str
    expense: Expense

    @property
    def shares(self):
        return self.expense.shares

    def to_dict(self):
        return {'id': self.id, 'expense': self.expense.to_dict()}


@dataclass(frozen=True)
class Balance:
    counterparty: str
    currencies: Dict[str, int] = field(default_factory=dict)

    def to_dict(self):
        return {'counterparty': self.counterparty, 'currencies': dict(self.currencies)}


def _to_identifiable(record):
    return IdentifiableExpense(
        id=record.id,
        expense=Expense(
            timestamp=record.timestamp,
            details=record.details,
            total=record.total,
            currency=record.currency,
            shares=[ShareOfExpense(share.counterparty_id, share.cost) for share in record.shares],
        ),
    )


class SpendingsRepository:
    """SQLAlchemy-backed expense ledger."""

    def add_expense(self, expense):
        """Insert an expense under a fresh id.

        The caller is responsible for the expense being valid. perform()
        returns the new ExpenseId; rollback deletes the expense and its shares.
        """
        expense_id = str(uuid.uuid4())

        def perform():
            self._insert(expense_id, expense)
            return expense_id

        return MutationWorkItem(perform=perform, rollback=lambda: self._delete(expense_id))

    def remove_expense(self, expense_id):
        """Delete an expense; rollback re-inserts it exactly as it was."""
        try:
            record = db.session.get(ExpenseRecord, expense_id)
            captured = None
            if record is not None:
                captured = (_to_identifiable(record).expense, record.created_at)
        except SQLAlchemyError as e:
            logger.error(f"remove_expense: failed to capture expense {expense_id}: {e}")
            return MutationWorkItem.failed(e)
        if captured is None:
            return MutationWorkItem.failed(RecordNotFound(f'no such expense {expense_id}'))
        expense, created_at = captured
        return MutationWorkItem(
            perform=lambda: self._delete(expense_id),
            rollback=lambda: self._insert(expense_id, expense, created_at=created_at),
        )

    def get_expense(self, expense_id):
        """Return the IdentifiableExpense for `expense_id`, or None."""
        record = db.session.get(ExpenseRecord, expense_id)
        return _to_identifiable(record) if record else None

    def get_expenses_between(self, counterparty, other):
        """All expenses in which both counterparties hold a share."""
        with_first = select(ExpenseShare.expense_id).where(
            ExpenseShare.counterparty_id == counterparty
        )
        with_second = select(ExpenseShare.expense_id).where(
            ExpenseShare.counterparty_id == other
        )
        records = ExpenseRecord.query.filter(
            ExpenseRecord.id.in_(with_first),
            ExpenseRecord.id.in_(with_second),
        ).order_by(
            ExpenseRecord.timestamp,
            ExpenseRecord.created_at,
            ExpenseRecord.id,
        ).all()
        return [_to_identifiable(record) for record in records]

    def get_balance(self, actor):
        """Net per-currency balance of `actor` with every other counterparty.

        Zero currencies, and counterparties left with no currency, are omitted.
        """
        actor_share = aliased(ExpenseShare)
        other_share = aliased(ExpenseShare)
        rows = db.session.query(
            actor_share.id,
            actor_share.cost,
            ExpenseRecord.currency,
            other_share.counterparty_id,
        ).select_from(actor_share).join(
            ExpenseRecord, ExpenseRecord.id == actor_share.expense_id
        ).join(
            other_share, other_share.expense_id == actor_share.expense_id
        ).filter(
            actor_share.counterparty_id == actor,
            other_share.counterparty_id != actor,
        )

        totals = defaultdict(lambda: defaultdict(int))
        counted = set()
        for share_id, cost, currency, other in rows:
            # a counterparty listed twice in one expense is still one pairing
            if (share_id, other) in counted:
                continue
            counted.add((share_id, other))
            totals[other][currency] += cost

        balances = []
        for other in sorted(totals):
            currencies = {
                currency: cost for currency, cost in sorted(totals[other].items()) if cost != 0
            }
            if currencies:
                balances.append(Balance(counterparty=other, currencies=currencies))
        return balances

    def _insert(self, expense_id, expense, created_at=None):
        logger.info(f"insert expense start[id={expense_id}]")
        record = ExpenseRecord(
            id=expense_id,
            timestamp=expense.timestamp,
            details=expense.details,
            total=expense.total,
            currency=expense.currency,
        )
        if created_at is not None:
            record.created_at = created_at
        record.shares = [
            ExpenseShare(counterparty_id=share.counterparty, cost=share.cost, position=position)
            for position, share in enumerate(expense.shares)
        ]
        db.session.add(record)
        commit()
        logger.info(f"insert expense success[id={expense_id}]")

    def _delete(self, expense_id):
        logger.info(f"delete expense start[id={expense_id}]")
        record = db.session.get(ExpenseRecord, expense_id)
        if record is not None:
            db.session.delete(record)
        commit()
        logger.info(f"delete expense success[id={expense_id}]")
