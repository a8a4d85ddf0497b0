"""
Pysite - multi-tenant CMS server

Each tenant site lives in its own directory with a TOML configuration,
layouts, pages, partials, public files and SQLite databases. Pages are
rendered with a streaming template engine that never raises on template
errors but reports them alongside the output.

Example:
    >>> from pysite import Engine
    >>> Engine().render("Hello {{ .Name }}!", {"Name": "World"}).output
    'Hello World!'
"""

__version__ = "0.1.0"
__author__ = "Pysite Team"

from pysite.config import AppConfig, ConfigPresets, get_config_from_environment
from pysite.exceptions import HTTPException, BadRequest, NotFound, Forbidden, SiteNotFound, SiteLoadError
from pysite.templating import Engine, EngineConfig, RenderResult, TemplateError, ErrorKind
from pysite.sites import Site, Page, SiteLoader, SiteManager, PageRenderer
from pysite.server import Application, Server

__all__ = [
    "AppConfig", "ConfigPresets", "get_config_from_environment",
    "HTTPException", "BadRequest", "NotFound", "Forbidden", "SiteNotFound", "SiteLoadError",
    "Engine", "EngineConfig", "RenderResult", "TemplateError", "ErrorKind",
    "Site", "Page", "SiteLoader", "SiteManager", "PageRenderer",
    "Application", "Server",
]
