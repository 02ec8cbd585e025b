# marketplace/services/base.py
from contextlib import contextmanager
from typing import Iterator

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.core.errors import StorageError, ValidationError


class BaseService:
    """Engine component bound to one storage session."""

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def storage(self, action: str) -> Iterator[None]:
        """
        Run a block of persistence calls. Any SQLAlchemy failure is rolled back,
        logged with its details and re-raised as a StorageError with a generic message.
        """
        try:
            yield
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("{} failed: {}", action, exc)
            raise StorageError() from exc

    def commit(self, action: str) -> None:
        with self.storage(action):
            self.db.commit()


def require_id(value: str | None, label: str) -> str:
    """Reject empty or obviously malformed ids before they reach the database."""
    if not value or not isinstance(value, str) or not value.strip() or len(value) > 64:
        raise ValidationError(f"Invalid {label} ID")
    return value.strip()
