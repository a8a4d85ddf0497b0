"""
Tenant and page models.

A page file may start with TOML front matter between ``+++`` lines::

    +++
    title = "About us"
    layout = "wide"
    require_auth = true
    +++
    {{ define "content" }}…{{ end }}
"""

import os
import tomllib
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from .routes import PAGE_EXTENSION, RouteTable, path_to_route

if TYPE_CHECKING:
    from ..databases import DatabaseManager
    from ..templating import Engine

FRONT_MATTER_DELIM = "+++"
DEFAULT_LAYOUT = "default"


@dataclass
class Page:
    title: str
    slug: str
    path: str
    route: str
    layout: str = DEFAULT_LAYOUT
    content: str = ""
    front_matter: Dict[str, Any] = field(default_factory=dict)
    require_auth: bool = False

    @property
    def meta(self) -> Dict[str, Any]:
        return self.front_matter

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "slug": self.slug,
            "path": self.path,
            "route": self.route,
            "layout": self.layout,
            "require_auth": self.require_auth,
            "meta": self.front_matter,
        }


@dataclass
class Site:
    id: str
    name: str
    domain: str
    root: Path
    base_url: str = ""
    aliases: List[str] = field(default_factory=list)
    data: Dict[str, Any] = field(default_factory=dict)
    config: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    layouts: Dict[str, str] = field(default_factory=dict)
    partials: Dict[str, str] = field(default_factory=dict)
    engine: Optional["Engine"] = field(default=None, repr=False)
    routes: RouteTable = field(default_factory=RouteTable, repr=False)
    databases: Optional["DatabaseManager"] = field(default=None, repr=False)

    @property
    def hosts(self) -> List[str]:
        hosts = [self.domain.lower()]
        hosts.extend(alias.lower() for alias in self.aliases if alias.lower() not in hosts)
        return hosts

    @property
    def layouts_dir(self) -> Path:
        return self.root / "layouts"

    @property
    def pages_dir(self) -> Path:
        return self.root / "pages"

    @property
    def partials_dir(self) -> Path:
        return self.root / "partials"

    @property
    def public_dir(self) -> Path:
        return self.root / "public"

    @property
    def databases_dir(self) -> Path:
        return self.root / "databases"

    def find_page(self, path: str) -> Tuple[Optional[Page], Dict[str, str]]:
        route, params = self.routes.match(path)
        if route is None:
            return None, {}
        return route.page, params


def split_front_matter(text: str) -> Tuple[Dict[str, Any], str]:
    """Separate ``+++`` TOML front matter from the page body.

    Raises ValueError when the front matter is unterminated or invalid TOML.
    """
    if text.startswith("\ufeff"):
        text = text[1:]
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].strip() != FRONT_MATTER_DELIM:
        return {}, text

    for index in range(1, len(lines)):
        if lines[index].strip() == FRONT_MATTER_DELIM:
            header = "".join(lines[1:index])
            body = "".join(lines[index + 1:])
            try:
                return tomllib.loads(header), body
            except tomllib.TOMLDecodeError as e:
                raise ValueError(f"invalid front matter: {e}") from e

    raise ValueError("front matter is not terminated by '+++'")


def page_title(page_path: str, site_name: str) -> str:
    """``about-us.html`` -> ``About Us | Site``; an index page gets the site name"""
    stem = os.path.basename(page_path)
    if stem.endswith(PAGE_EXTENSION):
        stem = stem[:-len(PAGE_EXTENSION)]
    title = stem.replace("_", " ").replace("-", " ").title()
    if title == "Index":
        return site_name
    return f"{title} | {site_name}"


def load_page(pages_dir: Path, rel_path: str, site_name: str) -> Page:
    with open(Path(pages_dir) / rel_path, encoding="utf-8") as f:
        text = f.read()

    front_matter, content = split_front_matter(text)
    stem = os.path.basename(rel_path)[:-len(PAGE_EXTENSION)]
    slug = front_matter.get("slug") or stem

    return Page(
        title=str(front_matter.get("title") or page_title(rel_path, site_name)),
        slug=str(slug),
        path=rel_path,
        route=path_to_route(rel_path),
        layout=str(front_matter.get("layout", DEFAULT_LAYOUT)),
        content=content,
        front_matter=front_matter,
        require_auth=bool(front_matter.get("require_auth", False)),
    )
