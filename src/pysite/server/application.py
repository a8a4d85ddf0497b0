"""
Pysite ASGI application.

One application serves every tenant: the request host selects the site, then
the request is dispatched to static files, login/logout, form submission,
the read-only JSON API or a page route. ``/health`` answers for any host.
"""

import logging
import re
import sqlite3
from typing import Any, Awaitable, Callable, Dict, Optional
from urllib.parse import quote

from ..auth import SessionStore, UserRepository, authenticate_request
from ..config import AppConfig
from ..exceptions import BadRequest, HTTPException, MethodNotAllowed, NotFound, Unauthorized
from ..http import Request, Response
from ..sites import PageRenderer, Site, SiteLoader, SiteManager

logger = logging.getLogger(__name__)

Receive = Callable[[], Awaitable[Dict[str, Any]]]
Send = Callable[[Dict[str, Any]], Awaitable[None]]

PUBLIC_PREFIX = "/public/"
FORMS_PREFIX = "/forms/"
API_PREFIX = "/api/"
HEALTH_PATH = "/health"
_FORM_NAME = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def _local_redirect_target(target: Optional[str], default: str = "/") -> str:
    """Only same-site absolute paths are accepted as redirect targets"""
    if isinstance(target, str) and target.startswith("/") and not target.startswith("//") and "\\" not in target:
        return target
    return default


class Application:
    """
    Multi-tenant CMS application.

    Example:
        app = Application(ConfigPresets.development())
        Server(app, app.config).run()
    """

    def __init__(self, config: Optional[AppConfig] = None, site_manager: Optional[SiteManager] = None):
        self.config = config or AppConfig()
        self.sites = site_manager or SiteManager(
            self.config.sites.path,
            default_site=self.config.sites.default_site,
            loader=SiteLoader(self.config.templates),
        )
        self._started = False

    @property
    def debug(self) -> bool:
        return self.config.debug

    async def startup(self) -> None:
        if not len(self.sites):
            self.sites.load_all()
        for site in self.sites.sites:
            await site.databases.scaffold_all()
            await SessionStore(site.databases, self.config.sessions).cleanup()
        self._started = True
        logger.info("Application started with %d site(s)", len(self.sites))

    async def shutdown(self) -> None:
        for site in self.sites.sites:
            await site.databases.close()
        self._started = False
        logger.info("Application shut down")

    async def __call__(self, scope: Dict[str, Any], receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await self.handle_lifespan(scope, receive, send)
        elif scope["type"] == "http":
            await self.handle_http(scope, receive, send)

    async def handle_lifespan(self, scope: Dict[str, Any], receive: Receive, send: Send) -> None:
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                try:
                    await self.startup()
                    await send({"type": "lifespan.startup.complete"})
                except Exception as e:
                    logger.exception("Startup failed")
                    await send({"type": "lifespan.startup.failed", "message": str(e)})
            elif message["type"] == "lifespan.shutdown":
                try:
                    await self.shutdown()
                    await send({"type": "lifespan.shutdown.complete"})
                except Exception as e:
                    logger.exception("Shutdown failed")
                    await send({"type": "lifespan.shutdown.failed", "message": str(e)})
                break

    async def handle_http(self, scope: Dict[str, Any], receive: Receive, send: Send) -> None:
        request = Request(scope, receive, trust_proxy_headers=self.config.sites.trust_proxy_headers)
        try:
            response = await self.dispatch(request)
        except HTTPException as exc:
            response = self.handle_exception(exc, request)
        except Exception:
            logger.exception("Unhandled error for %s %s%s", request.method, request.host, request.path)
            response = Response.text("Internal Server Error", status_code=500)
        await response(scope, receive, send)

    def handle_exception(self, exc: HTTPException, request: Request) -> Response:
        if exc.status_code >= 500:
            logger.error("%s %s%s failed: %s", request.method, request.host, request.path, exc)
        else:
            logger.debug("%s %s%s -> %d %s", request.method, request.host, request.path,
                         exc.status_code, exc.detail)
        return Response.text(exc.detail, status_code=exc.status_code, headers=exc.headers)

    async def dispatch(self, request: Request) -> Response:
        path = request.path
        method = request.method
        if path == HEALTH_PATH:
            if method not in ("GET", "HEAD"):
                raise MethodNotAllowed()
            return Response.json({"status": "healthy", "sites": len(self.sites)})

        site = self.sites.get_site(request.host)

        if path.startswith(PUBLIC_PREFIX):
            if method not in ("GET", "HEAD"):
                raise MethodNotAllowed()
            return self.serve_public(site, path[len(PUBLIC_PREFIX):])

        if path == "/login" and method == "POST":
            return await self.login(request, site)

        if path == "/logout" and method in ("GET", "POST"):
            return await self.logout(request, site)

        if path.startswith(FORMS_PREFIX):
            if method != "POST":
                raise MethodNotAllowed()
            return await self.submit_form(request, site, path[len(FORMS_PREFIX):])

        if path.startswith(API_PREFIX):
            if method not in ("GET", "HEAD"):
                raise MethodNotAllowed()
            return await self.api(request, site, path[len(API_PREFIX):].strip("/"))

        if method not in ("GET", "HEAD"):
            raise MethodNotAllowed()
        return await self.render_page(request, site)

    def serve_public(self, site: Site, rel_path: str) -> Response:
        base = site.public_dir.resolve()
        target = (base / rel_path).resolve()
        if not target.is_relative_to(base) or not target.is_file():
            raise NotFound()
        response = Response.file(str(target))
        response.set_cache_control("public", max_age=3600)
        return response

    async def render_page(self, request: Request, site: Site) -> Response:
        page, params = site.find_page(request.path)
        if page is None:
            raise NotFound(f"No page at {request.path}")

        user = await authenticate_request(request, site, self.config.sessions)
        if page.require_auth and user is None:
            return Response.redirect(f"/login?next={quote(request.path)}")

        rendered = PageRenderer(site).render(page, params, user)
        html = rendered.html
        if rendered.errors:
            logger.warning("%d template error(s) rendering %s of %s",
                           len(rendered.errors), page.path, site.domain)
            if self.debug:
                html += self._error_comment(rendered.errors)

        await self._record_page_view(request, site, page.title)
        return Response.html(html)

    @staticmethod
    def _error_comment(errors) -> str:
        lines = "\n".join(str(error).replace("--", "- -") for error in errors)
        return f"\n<!-- template errors:\n{lines}\n-->\n"

    async def _record_page_view(self, request: Request, site: Site, title: str) -> None:
        try:
            await site.databases.record_page_view(
                request.path,
                page_title=title,
                referrer=request.get_header("referer"),
                user_agent=request.get_header("user-agent"),
                ip_address=request.remote_addr,
                session_id=request.cookies.get(self.config.sessions.cookie_name),
            )
        except sqlite3.Error:
            logger.exception("Failed to record page view for %s%s", site.domain, request.path)

    async def login(self, request: Request, site: Site) -> Response:
        form = await request.form()
        identifier = form.get("username") or form.get("email")
        password = form.get("password")
        if not isinstance(identifier, str) or not isinstance(password, str) or not identifier or not password:
            raise BadRequest("username and password are required")

        user = await UserRepository(site.databases).authenticate(identifier, password)
        if user is None:
            logger.info("Failed login for %s on %s", identifier, site.domain)
            return Response.redirect("/login?error=1")

        sessions = SessionStore(site.databases, self.config.sessions)
        token = await sessions.create(user, ip_address=request.remote_addr,
                                      user_agent=request.get_header("user-agent"))
        response = Response.redirect(_local_redirect_target(form.get("next")))
        response.set_cookie(
            self.config.sessions.cookie_name,
            token,
            max_age=self.config.sessions.max_age,
            secure=self.config.sessions.secure,
            httponly=True,
        )
        logger.info("User %s logged in on %s", user.username, site.domain)
        return response

    async def logout(self, request: Request, site: Site) -> Response:
        cookie_name = self.config.sessions.cookie_name
        token = request.cookies.get(cookie_name)
        if token:
            await SessionStore(site.databases, self.config.sessions).delete(token)
        response = Response.redirect("/")
        response.delete_cookie(cookie_name)
        return response

    async def submit_form(self, request: Request, site: Site, form_name: str) -> Response:
        if not _FORM_NAME.match(form_name):
            raise NotFound(f"Unknown form '{form_name}'")

        fields = dict(await request.form())
        redirect = fields.pop("_redirect", None)
        if not fields:
            raise BadRequest("Form submission is empty")

        submission_id = await site.databases.store_form_submission(
            form_name, fields,
            ip_address=request.remote_addr,
            user_agent=request.get_header("user-agent"),
        )
        logger.info("Stored submission %s for form %s on %s", submission_id, form_name, site.domain)

        if redirect:
            return Response.redirect(_local_redirect_target(redirect))
        return Response.json({"status": "ok", "id": submission_id}, status_code=201)

    async def api(self, request: Request, site: Site, endpoint: str) -> Response:
        """Read-only tenant API for signed-in users.

        ``pages`` lists the routed pages (or, with ``?path=``, the page serving
        that path), ``forms`` lists the forms and ``forms/<name>/submissions``
        the newest submissions of one form.
        """
        user = await authenticate_request(request, site, self.config.sessions)
        if user is None or not user.is_authenticated:
            raise Unauthorized("Sign in to use the API")

        parts = endpoint.split("/") if endpoint else []
        if parts == ["pages"]:
            return self._api_pages(request, site)
        if parts == ["forms"]:
            return Response.json(await site.databases.list_forms())
        if len(parts) == 3 and parts[0] == "forms" and parts[2] == "submissions":
            submissions = await site.databases.get_form_submissions(parts[1])
            if submissions is None:
                raise NotFound(f"Unknown form '{parts[1]}'")
            return Response.json(submissions)
        raise NotFound(f"No API endpoint {endpoint!r}")

    @staticmethod
    def _api_pages(request: Request, site: Site) -> Response:
        path = request.get_query_param("path")
        if path is None:
            return Response.json([route.page.to_dict() for route in site.routes])
        page, params = site.find_page(path)
        if page is None:
            raise NotFound(f"No page at {path}")
        return Response.json({**page.to_dict(), "params": params})
