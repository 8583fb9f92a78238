"""Request correlation middleware."""

import logging
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from faultecho.namespace import namespace_from_request

CORRELATION_ID_HEADER = "X-Request-ID"

correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)
namespace_var: ContextVar[str | None] = ContextVar("namespace", default=None)


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """Attach a request ID to every echo/metrics request.

    A client-supplied ``X-Request-ID`` is preserved, otherwise a UUID4 hex
    is generated. The ID is echoed back on the response. The ID and the
    Host-derived namespace are kept in ``ContextVar``s for the logging filter.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        cid = request.headers.get(CORRELATION_ID_HEADER) or uuid.uuid4().hex
        request.state.correlation_id = cid
        cid_token = correlation_id_var.set(cid)
        ns_token = namespace_var.set(namespace_from_request(request))
        try:
            response = await call_next(request)
        finally:
            namespace_var.reset(ns_token)
            correlation_id_var.reset(cid_token)
        response.headers[CORRELATION_ID_HEADER] = cid
        return response


class CorrelationIDFilter(logging.Filter):
    """Stamp ``correlation_id`` and, unless set via ``extra``, ``namespace``."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get()  # type: ignore[attr-defined]
        if getattr(record, "namespace", None) is None:
            record.namespace = namespace_var.get()  # type: ignore[attr-defined]
        return True
