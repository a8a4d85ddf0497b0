"""
Page rendering with layouts and partials.

A request gets its own RenderState on the tenant engine. Every partial is
defined as a block named after its file stem, the page is rendered (its
``define`` blocks land on the state) and then its layout is rendered on the
same state, where ``block`` tags pick up the page's definitions.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from ..templating import TemplateError
from .adapters import PageAdapter, UserAdapter
from .site import Page, Site

logger = logging.getLogger(__name__)


@dataclass
class RenderedPage:
    html: str
    errors: List[TemplateError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class PageRenderer:
    def __init__(self, site: Site):
        self.site = site

    def render(self, page: Page, params: Optional[Mapping[str, str]] = None,
               user: Optional[Any] = None, data: Optional[Mapping[str, Any]] = None) -> RenderedPage:
        site = self.site
        state = site.engine.new_state()
        state.register_data_adapter("Page", PageAdapter(page, params))
        state.register_data_adapter("User", UserAdapter(user))

        for name, source in site.partials.items():
            state.define_block(name, source)

        local = dict(data or {})
        body, errors = state.render(page.content, local)
        errors = list(errors)

        if not page.layout:
            return RenderedPage(body, errors)

        layout = site.layouts.get(page.layout)
        if layout is None:
            logger.warning("Layout '%s' for page %s of %s not found, rendering page without layout",
                           page.layout, page.path, site.domain)
            return RenderedPage(body, errors)

        html, layout_errors = state.render(layout, local)
        errors.extend(layout_errors)
        return RenderedPage(html, errors)
