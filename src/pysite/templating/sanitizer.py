"""
HTML sanitization of interpolated values.

Only values written by ``{{ .path }}`` / ``{{ $var }}`` interpolations pass
through the sanitizer; literal template text is authored by the tenant and
emitted as is.
"""

import logging
from typing import Callable, Dict, FrozenSet, List, Optional

import bleach

logger = logging.getLogger(__name__)

SanitizeFunc = Callable[[str], str]

# Elements suitable for user generated content
UGC_TAGS: FrozenSet[str] = frozenset({
    "a", "abbr", "acronym", "b", "blockquote", "br", "caption", "cite", "code",
    "col", "colgroup", "dd", "del", "details", "dfn", "div", "dl", "dt", "em",
    "figcaption", "figure", "h1", "h2", "h3", "h4", "h5", "h6", "hr", "i",
    "img", "ins", "kbd", "li", "mark", "ol", "p", "pre", "q", "s", "samp",
    "small", "span", "strike", "strong", "sub", "summary", "sup", "table",
    "tbody", "td", "tfoot", "th", "thead", "time", "tr", "u", "ul", "var",
})

UGC_ATTRIBUTES: Dict[str, List[str]] = {
    "*": ["dir", "lang", "title"],
    "a": ["href", "rel", "title"],
    "abbr": ["title"],
    "blockquote": ["cite"],
    "img": ["src", "alt", "title", "width", "height"],
    "ol": ["start", "reversed"],
    "q": ["cite"],
    "td": ["colspan", "rowspan", "align"],
    "th": ["colspan", "rowspan", "align", "scope"],
    "time": ["datetime"],
}

UGC_PROTOCOLS: FrozenSet[str] = frozenset({"http", "https", "mailto"})


class Sanitizer:
    """bleach based sanitizer using the user generated content safelist"""

    def __init__(self, tags: Optional[FrozenSet[str]] = None,
                 attributes: Optional[Dict[str, List[str]]] = None,
                 protocols: Optional[FrozenSet[str]] = None,
                 strip: bool = True):
        self.tags = frozenset(tags) if tags is not None else UGC_TAGS
        self.attributes = attributes if attributes is not None else UGC_ATTRIBUTES
        self.protocols = frozenset(protocols) if protocols is not None else UGC_PROTOCOLS
        self.strip = strip

    @property
    def enabled(self) -> bool:
        return True

    def __call__(self, text: str) -> str:
        return bleach.clean(
            text,
            tags=self.tags,
            attributes=self.attributes,
            protocols=self.protocols,
            strip=self.strip,
        )


class NoopSanitizer:
    """Pass-through used when sanitization is disabled"""

    @property
    def enabled(self) -> bool:
        return False

    def __call__(self, text: str) -> str:
        return text


class FunctionSanitizer:
    """Wraps a caller supplied ``str -> str`` function"""

    def __init__(self, func: SanitizeFunc):
        self.func = func

    @property
    def enabled(self) -> bool:
        return True

    def __call__(self, text: str) -> str:
        return self.func(text)


def make_sanitizer(enabled: bool = True, func: Optional[SanitizeFunc] = None):
    """Build the sanitizer an engine applies to interpolations"""
    if not enabled:
        logger.warning("Template sanitization is disabled, interpolated values are emitted raw")
        return NoopSanitizer()
    if func is not None:
        return FunctionSanitizer(func)
    return Sanitizer()
