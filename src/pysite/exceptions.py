"""
Framework exceptions.

Problems in template source are never raised; they are collected as
``pysite.templating.TemplateError`` values. The exceptions here cover HTTP
handling and tenant loading.
"""

import json
from typing import Any, Dict, Optional


class PysiteError(Exception):
    """Base class for every pysite exception"""

    def __init__(self, message: str, status_code: int = 500, error_code: str = "internal_error",
                 headers: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.headers = headers or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "status_code": self.status_code,
            }
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    def __str__(self) -> str:
        return f"{self.error_code}: {self.message}"


class HTTPException(PysiteError):
    """Error that maps directly onto an HTTP response"""

    def __init__(self, status_code: int = 500, detail: str = "Internal server error",
                 error_code: str = "http_error", headers: Optional[Dict[str, str]] = None):
        super().__init__(detail, status_code=status_code, error_code=error_code, headers=headers)

    @property
    def detail(self) -> str:
        return self.message


class BadRequest(HTTPException):
    """400 Bad Request"""
    def __init__(self, detail: str = "Bad request", **kwargs):
        super().__init__(400, detail, error_code="bad_request", **kwargs)


class Unauthorized(HTTPException):
    """401 Unauthorized"""
    def __init__(self, detail: str = "Unauthorized", **kwargs):
        super().__init__(401, detail, error_code="unauthorized", **kwargs)


class Forbidden(HTTPException):
    """403 Forbidden"""
    def __init__(self, detail: str = "Forbidden", **kwargs):
        super().__init__(403, detail, error_code="forbidden", **kwargs)


class NotFound(HTTPException):
    """404 Not Found"""
    def __init__(self, detail: str = "Not found", **kwargs):
        super().__init__(404, detail, error_code="not_found", **kwargs)


class MethodNotAllowed(HTTPException):
    """405 Method Not Allowed"""
    def __init__(self, detail: str = "Method not allowed", **kwargs):
        super().__init__(405, detail, error_code="method_not_allowed", **kwargs)


class SiteNotFound(NotFound):
    """No tenant is configured for the requested host"""

    def __init__(self, host: str):
        self.host = host
        super().__init__(f"No site configured for host '{host}'")
        self.error_code = "site_not_found"


class SiteLoadError(PysiteError):
    """A tenant directory could not be loaded"""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot load site at {path}: {reason}", error_code="site_load_error")


__all__ = [
    'PysiteError', 'HTTPException', 'BadRequest', 'Unauthorized', 'Forbidden',
    'NotFound', 'MethodNotAllowed', 'SiteNotFound', 'SiteLoadError',
]
