"""HTTP middleware for the Survey Dashboard API."""

import secrets

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from typing import Callable

from app.core.config import settings
from app.core.exceptions import ErrorCode
from app.core.security import generate_secure_token


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"

        # Responses carrying tokens must never be cached
        if request.url.path.startswith("/api/"):
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate"
            response.headers["Pragma"] = "no-cache"

        return response


class RequestValidationMiddleware(BaseHTTPMiddleware):
    """Reject oversized bodies and unexpected content types."""

    # Auth payloads are tiny
    MAX_BODY_SIZE = 64 * 1024

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.MAX_BODY_SIZE:
            return Response(
                content='{"detail": "Request body too large", "error_code": "VALIDATION_ERROR"}',
                status_code=413,
                media_type="application/json",
            )

        if request.method in ("POST", "PUT", "PATCH"):
            content_type = request.headers.get("content-type", "")
            if content_type and "application/json" not in content_type:
                return Response(
                    content='{"detail": "Unsupported content type", "error_code": "VALIDATION_ERROR"}',
                    status_code=415,
                    media_type="application/json",
                )

        return await call_next(request)


class CSRFMiddleware(BaseHTTPMiddleware):
    """
    Double-submit CSRF check for routes the refresh cookie authenticates.

    Issues a JavaScript-readable token cookie; POSTs to the protected paths
    that carry the refresh cookie must echo it in the CSRF header.
    """

    PROTECTED_PATHS = ("/api/auth/refresh", "/api/auth/logout")
    TOKEN_MAX_AGE = 24 * 60 * 60

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        cookie_token = request.cookies.get(settings.CSRF_COOKIE_NAME)

        if (
            request.method == "POST"
            and request.url.path in self.PROTECTED_PATHS
            and request.cookies.get(settings.REFRESH_COOKIE_NAME)
        ):
            header_token = request.headers.get(settings.CSRF_HEADER_NAME)
            if not cookie_token or not header_token:
                return self._reject("CSRF token missing", cookie_token)
            if not secrets.compare_digest(cookie_token.encode(), header_token.encode()):
                return self._reject("CSRF token invalid", cookie_token)

        response = await call_next(request)
        if not cookie_token:
            self._issue_token(response)
        return response

    def _reject(self, detail: str, cookie_token) -> Response:
        response = JSONResponse(
            status_code=403,
            content={"detail": detail, "error_code": ErrorCode.FORBIDDEN.value},
        )
        if not cookie_token:
            self._issue_token(response)
        return response

    def _issue_token(self, response: Response) -> None:
        response.set_cookie(
            key=settings.CSRF_COOKIE_NAME,
            value=generate_secure_token(),
            httponly=False,
            secure=settings.COOKIE_SECURE,
            samesite="strict",
            max_age=self.TOKEN_MAX_AGE,
            path="/",
        )
