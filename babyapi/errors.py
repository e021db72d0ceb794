"""Error responses that are both raised as exceptions and rendered as JSON bodies."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any


@dataclass
class ErrResponse(Exception):
    """An HTTP error response carrying a status code and a JSON body."""

    http_status_code: int = 0
    status_text: str = ""
    app_code: int = 0
    error_text: str = ""
    err: BaseException | None = None

    __hash__ = Exception.__hash__

    def __str__(self) -> str:
        return f"unexpected response with text: {self.status_text}"

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON body of the response; empty optional fields are left out."""
        body: dict[str, Any] = {"status": self.status_text}
        if self.app_code:
            body["code"] = self.app_code
        if self.error_text:
            body["error"] = self.error_text
        return body

    def to_json(self) -> str:
        """Encode the response body as compact JSON."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_json(cls, text: str | bytes, http_status_code: int) -> ErrResponse:
        """Decode an error body received with the given HTTP status code.

        Raises ValueError if the text is not a JSON object of the expected shape.
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValueError(f"invalid error response {text!r}: {exc}") from exc
        if not isinstance(data, dict):
            raise ValueError(f"invalid error response {text!r}: expected a JSON object")

        status = data.get("status", "")
        code = data.get("code", 0)
        error = data.get("error", "")
        if not isinstance(status, str):
            raise ValueError(f"invalid error response {text!r}: 'status' must be a string")
        if isinstance(code, bool) or not isinstance(code, int):
            raise ValueError(f"invalid error response {text!r}: 'code' must be an integer")
        if not isinstance(error, str):
            raise ValueError(f"invalid error response {text!r}: 'error' must be a string")

        return cls(
            http_status_code=http_status_code,
            status_text=status,
            app_code=code,
            error_text=error,
        )


def err_render(err: BaseException) -> ErrResponse:
    """Response for a failure while rendering a response (422)."""
    return ErrResponse(
        http_status_code=422,
        status_text="Error rendering response.",
        error_text=str(err),
        err=err,
    )


def err_invalid_request(err: BaseException) -> ErrResponse:
    """Response for a request that could not be accepted (400)."""
    return ErrResponse(
        http_status_code=400,
        status_text="Invalid request.",
        error_text=str(err),
        err=err,
    )


def internal_server_error(err: BaseException) -> ErrResponse:
    """Response for an unexpected server-side failure (500)."""
    return ErrResponse(
        http_status_code=500,
        status_text="Server Error.",
        error_text=str(err),
        err=err,
    )


def not_found_response() -> ErrResponse:
    """A fresh 404 response."""
    return ErrResponse(http_status_code=404, status_text="Resource not found.")


def method_not_allowed_response() -> ErrResponse:
    """A fresh 405 response."""
    return ErrResponse(http_status_code=405, status_text="Method not allowed.")


def forbidden_response() -> ErrResponse:
    """A fresh 403 response."""
    return ErrResponse(http_status_code=403, status_text="Forbidden")