# marketplace/db/models/outbox.py
from sqlalchemy import Column, DateTime, Integer, String, Text, func

from marketplace.db.base import Base


class PendingCounterUpdate(Base):
    """
    Category ref update queued by a Service mutation.
    Written in the same transaction as the Service row; removed once applied.
    """
    __tablename__ = "pending_counter_updates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    category_id = Column(String(32), nullable=False, index=True)
    service_id = Column(String(32), nullable=False)
    op = Column(String(16), nullable=False)  # CounterOp
    attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
