"""In-memory store for contest submissions."""

import logging
import threading
import uuid
from datetime import datetime, timezone

from errors import SubmissionNotFoundError
from schemas import Submission, SubmissionIn

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50
MAX_LIMIT = 200

CONTEST_INFO = {
    "name": "Crypto Contest #1",
    "status": "open",
    "rules": "Post your performance (PnL/score). Top of the leaderboard wins.",
    "endpoints": {
        "list": "/api/contest/submissions",
        "submit": "/api/contest/submit",
    },
}


def clamp_pagination(limit: int | None, page: int | None) -> tuple[int, int]:
    """Clamp limit to [1, MAX_LIMIT] and page to >= 1."""
    limit = DEFAULT_LIMIT if limit is None else limit
    page = 1 if page is None else page
    return max(1, min(limit, MAX_LIMIT)), max(page, 1)


class SubmissionStore:
    def __init__(self):
        self._items: dict[str, Submission] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._items)

    def create(self, data: SubmissionIn) -> Submission:
        now = datetime.now(timezone.utc)
        submission = Submission(
            **data.model_dump(),
            id=uuid.uuid4().hex,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._items[submission.id] = submission
        logger.info("New submission %s from %s", submission.id, submission.username)
        return submission

    def list_page(self, limit: int | None = None, page: int | None = None) -> tuple[list[Submission], int, int, int]:
        """Return (items, total, limit, page), newest first."""
        limit, page = clamp_pagination(limit, page)
        with self._lock:
            ordered = list(reversed(self._items.values()))
        skip = (page - 1) * limit
        return ordered[skip : skip + limit], len(ordered), limit, page

    def delete(self, submission_id: str) -> Submission:
        with self._lock:
            removed = self._items.pop(submission_id, None)
        if removed is None:
            raise SubmissionNotFoundError(submission_id)
        logger.info("Removed submission %s", submission_id)
        return removed
