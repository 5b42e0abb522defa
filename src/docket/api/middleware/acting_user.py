"""Acting user middleware.

Identity is established upstream; the gateway forwards the acting user's id
in ``X-Docket-User``. Routes that need a user enforce it through the
``get_current_user`` dependency.
"""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from docket.logging_config import bind_request_context

USER_HEADER = "x-docket-user"


class ActingUserMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        user_id = request.headers.get(USER_HEADER, "").strip() or None
        request.state.user_id = user_id
        if user_id:
            bind_request_context(getattr(request.state, "trace_id", "trc_unknown"), user_id)
        return await call_next(request)
