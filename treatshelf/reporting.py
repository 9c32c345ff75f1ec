"""
Error reporting for request handlers.

Errors are written through ``logging``; on Cloud Run and App Engine, records
with a traceback on stderr are picked up by Error Reporting.
"""

from __future__ import annotations

import logging

from fastapi import Request

logger = logging.getLogger(__name__)


def report_error(
    request: Request, exc: BaseException, *, status_code: int, message: str
) -> None:
    if status_code >= 500:
        logger.error(
            "Handler error (reported to Error Reporting): status code: %d, "
            "message: %s, underlying err: %r, request: %s %s",
            status_code,
            message,
            exc,
            request.method,
            request.url.path,
            exc_info=exc,
        )
    else:
        logger.warning(
            "Handler error: status code: %d, message: %s, request: %s %s",
            status_code,
            message,
            request.method,
            request.url.path,
        )
