# marketplace/services/bookkeeping.py
# Rules shared by the provider and client request/rating ledgers.

from datetime import datetime, timezone

from marketplace.core.errors import InvalidStatusError, TerminalStatusError, ValidationError
from marketplace.db.base import new_id
from marketplace.db.models.enums import TERMINAL_STATUSES, RequestStatus

VALID_STATUSES = tuple(status.value for status in RequestStatus)
MIN_RATING = 1
MAX_RATING = 5


def validate_status(status) -> str:
    if isinstance(status, RequestStatus):
        status = status.value
    if status not in VALID_STATUSES:
        raise InvalidStatusError(f"Invalid status. Must be one of: {', '.join(VALID_STATUSES)}")
    return status


def ensure_not_terminal(current: str) -> None:
    # completed and cancelled requests are closed for good
    if current in TERMINAL_STATUSES:
        raise TerminalStatusError(f"Request is already {current} and cannot change status")


def validate_rating(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not MIN_RATING <= value <= MAX_RATING:
        raise ValidationError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")
    return value


def average_rating(ratings) -> float:
    values = [r.rating for r in ratings]
    if not values:
        return 0
    return round(sum(values) / len(values), 1)


def count_by_status(requests) -> dict:
    counts = {status: 0 for status in VALID_STATUSES}
    for request in requests:
        counts[request.status] = counts.get(request.status, 0) + 1
    return {
        "total_requests": len(requests),
        "pending": counts[RequestStatus.PENDING.value],
        "in_progress": counts[RequestStatus.IN_PROGRESS.value],
        "completed": counts[RequestStatus.COMPLETED.value],
        "cancelled": counts[RequestStatus.CANCELLED.value],
    }


def generate_request_number() -> str:
    today = datetime.now(tz=timezone.utc).strftime("%Y%m%d")
    return f"REQ-{today}-{new_id()[:6].upper()}"
