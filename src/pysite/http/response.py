"""
Pysite HTTP Response - ASGI response with content type detection, cookies
and the constructors used by the server (html, text, json, redirect, file).
"""

import json
import mimetypes
import os
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Any, Dict, List, Optional


class Response:
    """HTTP response sent through the ASGI ``send`` callable"""

    STATUS_CODES = {
        200: "OK",
        201: "Created",
        204: "No Content",
        301: "Moved Permanently",
        302: "Found",
        303: "See Other",
        304: "Not Modified",
        307: "Temporary Redirect",
        400: "Bad Request",
        401: "Unauthorized",
        403: "Forbidden",
        404: "Not Found",
        405: "Method Not Allowed",
        413: "Payload Too Large",
        500: "Internal Server Error",
        503: "Service Unavailable",
    }

    def __init__(
        self,
        content: Any = None,
        status_code: int = 200,
        headers: Optional[Dict[str, str]] = None,
        media_type: Optional[str] = None,
        charset: str = "utf-8",
    ):
        self.status_code = status_code
        self.headers = {key.lower(): value for key, value in (headers or {}).items()}
        self.content = content
        self.charset = charset
        self.cookies: List[str] = []
        self.media_type = self._detect_media_type(content, media_type)
        self._processed_content: Optional[bytes] = None
        self._set_default_headers()

    def _detect_media_type(self, content: Any, media_type: Optional[str]) -> str:
        if media_type:
            return media_type
        if isinstance(content, (dict, list)):
            return "application/json"
        if isinstance(content, str):
            lowered = content.lstrip().lower()
            if lowered.startswith("<!doctype") or lowered.startswith("<html"):
                return "text/html"
            return "text/plain"
        if isinstance(content, bytes):
            return "application/octet-stream"
        return "text/plain"

    def _set_default_headers(self) -> None:
        if "content-type" not in self.headers:
            content_type = self.media_type
            if self.charset and content_type.startswith(("text/", "application/json")):
                content_type += f"; charset={self.charset}"
            self.headers["content-type"] = content_type
        self.headers.setdefault("server", "pysite")
        self.headers.setdefault("date", format_datetime(datetime.now(timezone.utc), usegmt=True))
        self.headers.setdefault("x-content-type-options", "nosniff")

    def set_header(self, name: str, value: str) -> None:
        self.headers[name.lower()] = value

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name.lower(), default)

    def set_cookie(
        self,
        name: str,
        value: str,
        max_age: Optional[int] = None,
        path: str = "/",
        domain: Optional[str] = None,
        secure: bool = False,
        httponly: bool = True,
        samesite: Optional[str] = "Lax",
    ) -> None:
        cookie_parts = [f"{name}={value}"]
        if max_age is not None:
            cookie_parts.append(f"Max-Age={max_age}")
        if path:
            cookie_parts.append(f"Path={path}")
        if domain:
            cookie_parts.append(f"Domain={domain}")
        if secure:
            cookie_parts.append("Secure")
        if httponly:
            cookie_parts.append("HttpOnly")
        if samesite:
            cookie_parts.append(f"SameSite={samesite}")
        self.cookies.append("; ".join(cookie_parts))

    def delete_cookie(self, name: str, path: str = "/", domain: Optional[str] = None) -> None:
        cookie_parts = [f"{name}=", "Max-Age=0"]
        if path:
            cookie_parts.append(f"Path={path}")
        if domain:
            cookie_parts.append(f"Domain={domain}")
        self.cookies.append("; ".join(cookie_parts))

    def set_cache_control(self, directive: str, max_age: Optional[int] = None) -> None:
        cache_control = directive
        if max_age is not None:
            cache_control += f", max-age={max_age}"
        self.set_header("cache-control", cache_control)

    @property
    def body(self) -> bytes:
        if self._processed_content is not None:
            return self._processed_content

        if self.content is None:
            content = b""
        elif isinstance(self.content, bytes):
            content = self.content
        elif isinstance(self.content, str):
            content = self.content.encode(self.charset)
        elif isinstance(self.content, (dict, list)):
            content = json.dumps(self.content, ensure_ascii=False, default=str).encode(self.charset)
        else:
            content = str(self.content).encode(self.charset)

        self._processed_content = content
        return content

    async def __call__(self, scope: Dict[str, Any], receive, send) -> None:
        body = self.body
        headers = [[key.encode("latin-1"), value.encode("latin-1")] for key, value in self.headers.items()]
        if "content-length" not in self.headers:
            headers.append([b"content-length", str(len(body)).encode()])
        for cookie in self.cookies:
            headers.append([b"set-cookie", cookie.encode("latin-1")])

        await send({
            "type": "http.response.start",
            "status": self.status_code,
            "headers": headers,
        })
        await send({
            "type": "http.response.body",
            "body": b"" if scope.get("method") == "HEAD" else body,
            "more_body": False,
        })

    @classmethod
    def json(cls, content: Any, status_code: int = 200, headers: Optional[Dict[str, str]] = None,
             **kwargs) -> 'Response':
        return cls(content=content, status_code=status_code, headers=headers,
                   media_type="application/json", **kwargs)

    @classmethod
    def html(cls, content: str, status_code: int = 200, headers: Optional[Dict[str, str]] = None,
             **kwargs) -> 'Response':
        return cls(content=content, status_code=status_code, headers=headers,
                   media_type="text/html", **kwargs)

    @classmethod
    def text(cls, content: str, status_code: int = 200, headers: Optional[Dict[str, str]] = None,
             **kwargs) -> 'Response':
        return cls(content=content, status_code=status_code, headers=headers,
                   media_type="text/plain", **kwargs)

    @classmethod
    def redirect(cls, url: str, status_code: int = 303, headers: Optional[Dict[str, str]] = None,
                 **kwargs) -> 'Response':
        headers = dict(headers or {})
        headers["location"] = url
        return cls(content="", status_code=status_code, headers=headers, **kwargs)

    @classmethod
    def file(cls, path: str, media_type: Optional[str] = None, headers: Optional[Dict[str, str]] = None,
             **kwargs) -> 'Response':
        """Serve a file inline; a missing file yields a 404"""
        if not os.path.isfile(path):
            return cls.text("File not found", status_code=404)

        if media_type is None:
            media_type, _ = mimetypes.guess_type(path)

        with open(path, 'rb') as f:
            content = f.read()

        response = cls(content=content, headers=headers,
                       media_type=media_type or "application/octet-stream", **kwargs)
        modified = datetime.fromtimestamp(os.path.getmtime(path), tz=timezone.utc)
        response.set_header("last-modified", format_datetime(modified, usegmt=True))
        return response

    def __repr__(self) -> str:
        return f"<Response {self.status_code} {self.STATUS_CODES.get(self.status_code, 'Unknown')}>"
