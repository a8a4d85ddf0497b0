"""Tenant sites: loading, routing and page rendering."""

from .adapters import PageAdapter, SiteAdapter, UserAdapter
from .loader import SiteLoader
from .manager import SiteManager
from .renderer import PageRenderer, RenderedPage
from .routes import Route, RouteTable, path_to_route
from .site import Page, Site, load_page, page_title, split_front_matter

__all__ = [
    'Site', 'Page', 'SiteLoader', 'SiteManager', 'PageRenderer', 'RenderedPage',
    'Route', 'RouteTable', 'path_to_route', 'SiteAdapter', 'PageAdapter', 'UserAdapter',
    'load_page', 'page_title', 'split_front_matter',
]
