# marketplace/db/models/enums.py
from enum import Enum


class ChildMode(str, Enum):
    REFERENCED = "referenced"
    EMBEDDED = "embedded"


class RequestStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({RequestStatus.COMPLETED.value, RequestStatus.CANCELLED.value})


class Currency(str, Enum):
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    CAD = "CAD"
    AUD = "AUD"
    GHS = "GHS"


class CounterOp(str, Enum):
    INCREMENT = "increment"
    DECREMENT = "decrement"
