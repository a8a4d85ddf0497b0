"""
Pysite HTTP Request - ASGI scope wrapper.

Provides header normalization, host resolution for tenant lookup, query
parameters, cookies and lazily read request bodies (raw, JSON and
urlencoded forms).
"""

import json
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs

from ..exceptions import BadRequest

MAX_BODY_SIZE = 10 * 1024 * 1024


class Request:
    """HTTP request built from an ASGI scope"""

    def __init__(self, scope: Dict[str, Any], receive=None, trust_proxy_headers: bool = False):
        self.scope = scope
        self.receive = receive
        self.trust_proxy_headers = trust_proxy_headers

        self.method = scope.get("method", "GET").upper()
        self.path = scope.get("path", "/") or "/"
        self.query_string = scope.get("query_string", b"").decode("latin-1")

        self.headers = self._parse_headers(scope.get("headers", []))
        self.query_params = self._parse_query_params()
        self.path_params: Dict[str, str] = {}
        self.state: Dict[str, Any] = {}

        self.content_type = self.headers.get("content-type", "").lower()
        self.is_secure = scope.get("scheme") == "https"
        self.host = self._get_host()
        self.remote_addr = self._get_remote_addr()

        self._body: Optional[bytes] = None
        self._form_cache: Optional[Dict[str, Any]] = None

    def _parse_headers(self, headers: List[List[bytes]]) -> Dict[str, str]:
        """Parse and normalize HTTP headers; repeated headers are comma joined"""
        parsed: Dict[str, str] = {}
        for key_bytes, value_bytes in headers:
            key = key_bytes.decode("latin-1").lower()
            value = value_bytes.decode("latin-1")
            if key in parsed:
                separator = "; " if key == "cookie" else ", "
                parsed[key] = parsed[key] + separator + value
            else:
                parsed[key] = value
        return parsed

    def _parse_query_params(self) -> Dict[str, List[str]]:
        if not self.query_string:
            return {}
        return parse_qs(self.query_string, keep_blank_values=True)

    def _get_host(self) -> str:
        """Host name used to select the tenant: lower-cased, without port"""
        host = ""
        if self.trust_proxy_headers:
            host = self.headers.get("x-forwarded-host", "").split(",")[0].strip()
        if not host:
            host = self.headers.get("host", "")
        if not host:
            server = self.scope.get("server")
            if server:
                host = str(server[0])
        return normalize_host(host)

    def _get_remote_addr(self) -> str:
        if self.trust_proxy_headers:
            forwarded_for = self.headers.get("x-forwarded-for")
            if forwarded_for:
                return forwarded_for.split(",")[0].strip()
        client = self.scope.get("client")
        if client:
            return client[0]
        return "unknown"

    async def body(self) -> bytes:
        """Read the complete request body"""
        if self._body is None:
            chunks = []
            size = 0
            more_body = self.receive is not None
            while more_body:
                message = await self.receive()
                if message.get("type") == "http.disconnect":
                    break
                chunk = message.get("body", b"")
                size += len(chunk)
                if size > MAX_BODY_SIZE:
                    raise BadRequest("Request body too large")
                chunks.append(chunk)
                more_body = message.get("more_body", False)
            self._body = b"".join(chunks)
        return self._body

    async def json(self) -> Any:
        body = await self.body()
        if not body:
            raise BadRequest("Empty request body")
        try:
            return json.loads(body.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise BadRequest(f"Invalid JSON: {e}")

    async def form(self) -> Dict[str, Any]:
        """Parse an urlencoded body; repeated fields become lists"""
        if self._form_cache is not None:
            return self._form_cache

        if "application/x-www-form-urlencoded" not in self.content_type:
            raise BadRequest("Expected an application/x-www-form-urlencoded body")

        body = await self.body()
        try:
            parsed = parse_qs(body.decode("utf-8"), keep_blank_values=True)
        except UnicodeDecodeError as e:
            raise BadRequest(f"Invalid form data: {e}")

        self._form_cache = {
            key: value[0] if len(value) == 1 else value
            for key, value in parsed.items()
        }
        return self._form_cache

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name.lower(), default)

    def get_query_param(self, name: str, default: Optional[str] = None) -> Optional[str]:
        values = self.query_params.get(name)
        if values:
            return values[0]
        return default

    @property
    def cookies(self) -> Dict[str, str]:
        cookie_header = self.headers.get("cookie", "")
        cookies: Dict[str, str] = {}
        for item in cookie_header.split(";"):
            if "=" in item:
                name, value = item.strip().split("=", 1)
                cookies[name] = value
        return cookies

    @property
    def url(self) -> str:
        scheme = self.scope.get("scheme", "http")
        url = f"{scheme}://{self.host}{self.path}"
        if self.query_string:
            url += f"?{self.query_string}"
        return url

    def __repr__(self) -> str:
        return f"<Request {self.method} {self.host}{self.path}>"


def normalize_host(host: str) -> str:
    """Lower-case a host header value and strip its port"""
    host = host.strip().lower()
    if host.startswith("["):
        # IPv6 literal, e.g. [::1]:8000
        end = host.find("]")
        return host[:end + 1] if end != -1 else host
    if ":" in host:
        host = host.rsplit(":", 1)[0]
    return host.rstrip(".")
