import uuid
from typing import Optional

from fastapi import Request

REQUEST_ID_HEADER = "X-Request-ID"
ACTOR_HEADER = "X-Actor"


def assign_request_id(request: Request) -> str:
    request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
    request.state.request_id = request_id
    return request_id


def get_request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None)


def actor_from_request(request: Request) -> Optional[str]:
    """Operator name passed by the front office; authentication happens upstream."""
    actor = (request.headers.get(ACTOR_HEADER) or "").strip()
    return actor or None
