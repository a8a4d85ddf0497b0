"""
File-system routing.

Every ``pages/**/*.html`` file of a tenant becomes a route:

    pages/index.html              ->  /
    pages/about-us.html           ->  /about-us
    pages/blog/index.html         ->  /blog
    pages/blog/[slug].html        ->  /blog/{slug}
    pages/[lang]/docs/index.html  ->  /{lang}/docs
"""

import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Pattern, Tuple

logger = logging.getLogger(__name__)

PAGE_EXTENSION = ".html"

_PARAM_SEGMENT = re.compile(r"^\[([A-Za-z_][A-Za-z0-9_]*)\]$")
_PARAM_PLACEHOLDER = re.compile(r"^\{([A-Za-z_][A-Za-z0-9_]*)\}$")


def path_to_route(page_path: str) -> str:
    """Turn a page path relative to ``pages/`` into a route pattern"""
    route = page_path.replace("\\", "/")
    if route.endswith(PAGE_EXTENSION):
        route = route[:-len(PAGE_EXTENSION)]

    segments = [segment for segment in route.split("/") if segment]
    if segments and segments[-1] == "index":
        segments.pop()

    converted = []
    for segment in segments:
        param = _PARAM_SEGMENT.match(segment)
        converted.append("{" + param.group(1) + "}" if param else segment)
    return "/" + "/".join(converted)


def normalize_path(path: str) -> str:
    path = "/" + path.strip("/")
    return re.sub(r"/{2,}", "/", path)


@dataclass
class Route:
    """A route pattern compiled to a regex with one named group per parameter"""
    pattern: str
    page: Any = None
    params: List[str] = field(init=False)
    regex: Pattern = field(init=False, repr=False)

    def __post_init__(self):
        self.params = []
        parts = []
        for segment in self.pattern.strip("/").split("/"):
            if not segment:
                continue
            placeholder = _PARAM_PLACEHOLDER.match(segment)
            if placeholder:
                name = placeholder.group(1)
                if name in self.params:
                    raise ValueError(f"Duplicate parameter '{name}' in route {self.pattern}")
                self.params.append(name)
                parts.append(f"(?P<{name}>[^/]+)")
            else:
                parts.append(re.escape(segment))
        self.regex = re.compile("^/" + "/".join(parts) + "$")

    @property
    def is_static(self) -> bool:
        return not self.params

    @property
    def static_segments(self) -> int:
        return sum(1 for segment in self.pattern.split("/") if segment and not _PARAM_PLACEHOLDER.match(segment))

    def match(self, path: str) -> Optional[Dict[str, str]]:
        found = self.regex.match(path)
        if found is None:
            return None
        return found.groupdict()


class RouteTable:
    """Route lookup for one tenant; static routes win over parameterised ones"""

    def __init__(self):
        self._static: Dict[str, Route] = {}
        self._dynamic: List[Route] = []

    def add(self, pattern: str, page: Any = None) -> Route:
        route = Route(normalize_path(pattern), page)
        if route.is_static:
            if route.pattern in self._static:
                logger.warning("Route %s defined twice, keeping the last definition", route.pattern)
            self._static[route.pattern] = route
        else:
            self._dynamic = [existing for existing in self._dynamic if existing.pattern != route.pattern]
            self._dynamic.append(route)
            # More literal segments first, then fewer parameters
            self._dynamic.sort(key=lambda r: (-r.static_segments, len(r.params), r.pattern))
        return route

    def match(self, path: str) -> Tuple[Optional[Route], Dict[str, str]]:
        path = normalize_path(path)
        route = self._static.get(path)
        if route is not None:
            return route, {}
        for route in self._dynamic:
            params = route.match(path)
            if params is not None:
                return route, params
        return None, {}

    def scan(self, pages_dir: str, page_factory: Callable[[str], Any]) -> int:
        """Add one route per page file below ``pages_dir``.

        ``page_factory`` builds the page object for a path relative to
        ``pages_dir``; a factory that raises ValueError skips the file.
        """
        count = 0
        for rel_path in scan_pages(pages_dir):
            try:
                page = page_factory(rel_path)
            except ValueError as e:
                logger.warning("Skipping page %s: %s", rel_path, e)
                continue
            self.add(path_to_route(rel_path), page)
            count += 1
        return count

    def routes(self) -> List[Route]:
        return sorted(list(self._static.values()) + self._dynamic, key=lambda r: r.pattern)

    def __iter__(self) -> Iterator[Route]:
        return iter(self.routes())

    def __len__(self) -> int:
        return len(self._static) + len(self._dynamic)


def scan_pages(pages_dir: str) -> List[str]:
    """Relative paths (with ``/`` separators) of every page file, sorted"""
    pages = []
    if not os.path.isdir(pages_dir):
        return pages
    for dirpath, dirnames, filenames in os.walk(pages_dir):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
        for filename in filenames:
            if filename.endswith(PAGE_EXTENSION) and not filename.startswith("."):
                rel_path = os.path.relpath(os.path.join(dirpath, filename), pages_dir)
                pages.append(rel_path.replace(os.sep, "/"))
    return sorted(pages)
