from typing import Any, Optional

from fastapi import HTTPException


class APIError(HTTPException):
    """HTTPException carrying an optional ``details`` payload.

    Rendered by the app as ``{"error": detail, "details": details}``.
    """

    def __init__(self, status_code: int, detail: str, details: Optional[Any] = None, headers: Optional[dict] = None):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.details = details


def error_body(message: str, details: Optional[Any] = None) -> dict:
    body = {"error": message}
    if details is not None:
        body["details"] = details
    return body
