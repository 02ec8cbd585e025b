# marketplace/services/counter_outbox.py
# Category ref updates queued by Service mutations.
#
# A Service write stages its outbox rows in the same transaction, so either
# both land or neither does. flush() then applies the queued rows one by one,
# each in its own transaction. A row that fails stays queued for the next flush.

from loguru import logger
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.db.models.enums import CounterOp
from marketplace.db.models.outbox import PendingCounterUpdate
from marketplace.services.category_service import CategoryService


class CounterOutbox:
    def __init__(self, db: Session, categories: CategoryService | None = None):
        self.db = db
        self.categories = categories or CategoryService(db)

    def enqueue(self, category_id: str, service_id: str, op: CounterOp) -> PendingCounterUpdate:
        """Stage an entry on the current transaction. The caller commits."""
        entry = PendingCounterUpdate(category_id=category_id, service_id=service_id, op=CounterOp(op).value)
        self.db.add(entry)
        return entry

    def pending(self) -> list[PendingCounterUpdate]:
        return self.db.query(PendingCounterUpdate).order_by(PendingCounterUpdate.id).all()

    def _apply(self, entry: PendingCounterUpdate) -> bool:
        if entry.op == CounterOp.INCREMENT.value:
            return self.categories.add_service_ref(entry.category_id, entry.service_id)
        return self.categories.remove_service_ref(entry.category_id, entry.service_id)

    def flush(self) -> int:
        """
        Apply queued entries in order. Stops at the first failure so that a later
        decrement never overtakes the increment it undoes. Never raises.
        """
        try:
            entries = self.pending()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Could not read counter outbox: {}", exc)
            return 0

        applied = 0
        for entry in entries:
            entry_id, op, category_id, service_id = entry.id, entry.op, entry.category_id, entry.service_id
            try:
                self._apply(entry)
                self.db.delete(entry)
                self.db.commit()
            except IntegrityError:
                # the pair is already in the index; the increment is a no-op
                self.db.rollback()
                if not self._discard(entry_id):
                    break
            except SQLAlchemyError as exc:
                self.db.rollback()
                logger.error(
                    "Counter {} for category {} / service {} failed, left queued: {}",
                    op,
                    category_id,
                    service_id,
                    exc,
                )
                self._record_failure(entry_id, str(exc))
                break
            applied += 1
        return applied

    def _discard(self, entry_id: int) -> bool:
        try:
            entry = self.db.get(PendingCounterUpdate, entry_id)
            if entry is not None:
                self.db.delete(entry)
            self.db.commit()
            return True
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Could not discard counter outbox entry {}: {}", entry_id, exc)
            return False

    def _record_failure(self, entry_id: int, error: str) -> None:
        try:
            entry = self.db.get(PendingCounterUpdate, entry_id)
            if entry is None:
                return
            entry.attempts = (entry.attempts or 0) + 1
            entry.last_error = error[:1000]
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Could not record failure for counter outbox entry {}: {}", entry_id, exc)
