"""
Repository layer for the ledger service.

Repositories own all reads and writes against the database. Every write is
handed out as a MutationWorkItem: the repository captures whatever pre-state
is needed to undo the change when the work item is built, and the calling
service decides when to perform it and whether to roll it back.

Each underlying write is committed on its own, so rollback is best effort.
"""
import logging

from extensions import db

logger = logging.getLogger(__name__)


class RecordNotFound(LookupError):
    """Raised by a mutation whose target record does not exist."""
    pass


class MutationWorkItem:
    """A write paired with the action that undoes it.

    perform() applies the write and returns its result (if any). If it
    raises, nothing changed. rollback() restores the state captured when the
    work item was built and must only be called after a successful perform().
    """

    def __init__(self, perform, rollback):
        self._perform = perform
        self._rollback = rollback

    def perform(self):
        return self._perform()

    def rollback(self):
        return self._rollback()

    @classmethod
    def failed(cls, error):
        """Work item whose pre-state capture failed with `error`.

        Both perform() and rollback() raise the captured error.
        """
        def _raise():
            raise error
        return cls(_raise, _raise)


def rollback_all(performed):
    """Roll back performed work items in reverse order.

    Rollback failures are logged and swallowed.
    """
    for item in reversed(performed):
        try:
            item.rollback()
        except Exception as e:
            logger.error(f"Rollback failed, storage may be inconsistent: {e}")


def perform_all(*items):
    """Perform work items in order; on failure undo the ones already performed.

    Returns:
        List of perform() results, one per work item.

    Raises:
        The exception raised by the failing perform(), after rollback.
    """
    performed = []
    results = []
    for item in items:
        try:
            results.append(item.perform())
        except Exception:
            rollback_all(performed)
            raise
        performed.append(item)
    return results


def commit():
    """Commit the current session, discarding it on failure."""
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
