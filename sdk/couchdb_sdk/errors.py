"""
Error types for the CouchDB SDK.

This module defines all exception types raised by the SDK and the mapping
from failed HTTP responses to them:
- CouchError: Base exception
- ClientError: 4xx responses, with decoded {error, reason}
- NotFoundError / ConflictError / AuthorizationError: common 4xx cases
- ProtocolError: any other unexpected status, with the raw body
- TransportError: network failure below HTTP
- ValidationError: bad arguments rejected before any request is sent

Invariants:
    - All errors inherit from CouchError
    - HTTP errors always carry status, error code and optional reason
    - Absence (404 on a probe) and NotModified (304) are never errors
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import httpx


class CouchError(Exception):
    """Base exception for all CouchDB SDK errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "COUCH_ERROR"
        self.details = details or {}


class HttpError(CouchError):
    """The server answered with a status the operation does not accept.

    Attributes:
        status: HTTP status code
        error: Short machine error code (e.g. "conflict")
        reason: Optional human readable reason
    """

    def __init__(
        self,
        status: int,
        error: str,
        reason: Optional[str] = None,
        code: str = "HTTP_ERROR",
    ) -> None:
        message = f"{status}:{error}"
        if reason:
            message += f" ({reason})"
        super().__init__(
            message,
            code=code,
            details={"status": status, "error": error, "reason": reason},
        )
        self.status = status
        self.error = error
        self.reason = reason


class ClientError(HttpError):
    """4xx response.

    Raised when:
    - The request is malformed
    - A referenced database or document is missing
    - A revision does not match
    """

    def __init__(self, status: int, error: str, reason: Optional[str] = None) -> None:
        super().__init__(status, error, reason, code="CLIENT_ERROR")


class NotFoundError(ClientError):
    """404 on an operation where absence is not an expected outcome."""


class ConflictError(ClientError):
    """Revision mismatch or already-existing resource (409, 412).

    The client never retries; callers refetch the current revision.
    """


class AuthorizationError(ClientError):
    """Credentials missing, wrong, or lacking permission (401, 403)."""


class ProtocolError(HttpError):
    """Any other failing status.

    The error code is the raw response body text.
    """

    def __init__(self, status: int, error: str, reason: Optional[str] = None) -> None:
        super().__init__(status, error, reason, code="PROTOCOL_ERROR")


class TransportError(CouchError):
    """Failed to reach the server.

    Raised when:
    - Server is unreachable
    - Connection is reset
    - DNS or TLS fails
    """

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="TRANSPORT_ERROR",
            details={"endpoint": endpoint},
        )
        self.endpoint = endpoint


class RequestTimeoutError(TransportError):
    """The request did not complete within the configured timeout."""


class ValidationError(CouchError):
    """Arguments rejected before sending a request.

    Raised when:
    - An option has an invalid value
    - A payload does not match the collection's document type
    """

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        errors: Optional[List[str]] = None,
    ) -> None:
        super().__init__(
            message,
            code="VALIDATION_ERROR",
            details={"field": field_name, "errors": errors or []},
        )
        self.field_name = field_name
        self.errors = errors or []


class MultipartError(CouchError):
    """A multipart response could not be decoded."""

    def __init__(self, message: str, content_type: Optional[str] = None) -> None:
        super().__init__(
            message,
            code="MULTIPART_ERROR",
            details={"content_type": content_type},
        )
        self.content_type = content_type


_CLIENT_ERRORS: Dict[int, type[ClientError]] = {
    401: AuthorizationError,
    403: AuthorizationError,
    404: NotFoundError,
    409: ConflictError,
    412: ConflictError,
}


def _decode_error_body(text: str) -> tuple[str, Optional[str]] | None:
    """Extract (error, reason) from a JSON error body, if it is one."""
    try:
        body = json.loads(text)
    except ValueError:
        return None
    if not isinstance(body, dict) or "error" not in body:
        return None
    reason = body.get("reason")
    return str(body["error"]), str(reason) if reason is not None else None


def error_from_response(response: httpx.Response) -> HttpError:
    """Map a failed response to a structured error.

    4xx responses decode a JSON ``{error, reason}`` body when present and fall
    back to the raw body text. Every other status yields a ProtocolError whose
    error code is the raw body text. Bodyless responses (HEAD) use the reason
    phrase instead.

    The response body must already be read.
    """
    status = response.status_code
    text = response.text or response.reason_phrase

    if 400 <= status < 500:
        cls = _CLIENT_ERRORS.get(status, ClientError)
        decoded = _decode_error_body(text)
        if decoded is not None:
            return cls(status, decoded[0], decoded[1])
        return cls(status, text)

    return ProtocolError(status, text)
