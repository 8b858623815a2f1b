"""Contest submission routes."""

import hmac
import logging

from fastapi import APIRouter, Header, Query, Request

from errors import ForbiddenError
from schemas import SubmissionIn
from services.contest import CONTEST_INFO, DEFAULT_LIMIT

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def _require_admin(request: Request, token: str | None) -> None:
    expected = request.app.state.settings.admin_token
    if not expected or not token or not hmac.compare_digest(token.encode(), expected.encode()):
        logger.warning("Rejected admin request to %s", request.url.path)
        raise ForbiddenError()


@router.get("/contest")
async def contest_info() -> dict:
    return CONTEST_INFO


@router.post("/contest/submit", status_code=201)
async def submit(request: Request, body: SubmissionIn) -> dict:
    submission = request.app.state.submissions.create(body)
    return {"ok": True, "submission": submission.model_dump(mode="json", by_alias=True)}


@router.get("/contest/submissions")
async def list_submissions(
    request: Request,
    limit: int = Query(DEFAULT_LIMIT),
    page: int = Query(1),
) -> dict:
    """Newest first. Out-of-range limit/page values are clamped, not rejected."""
    items, total, limit, page = request.app.state.submissions.list_page(limit=limit, page=page)
    return {
        "ok": True,
        "page": page,
        "limit": limit,
        "total": total,
        "items": [item.model_dump(mode="json", by_alias=True) for item in items],
    }


@router.delete("/contest/submissions/{submission_id}")
async def delete_submission(
    request: Request,
    submission_id: str,
    x_admin_token: str | None = Header(None),
) -> dict:
    _require_admin(request, x_admin_token)
    request.app.state.submissions.delete(submission_id)
    return {"ok": True, "removedId": submission_id}
