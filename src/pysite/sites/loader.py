"""
Loads a tenant directory into a Site.

    <sites>/<domain>/
        config.toml        id, name, domain, base_url, aliases, [data], [templates]
        layouts/*.html
        pages/**/*.html
        partials/*.html
        public/
        databases/
"""

import logging
import tomllib
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from ..config import TemplateConfig
from ..databases import DatabaseManager
from ..exceptions import SiteLoadError
from ..templating import Engine, EngineConfig
from .adapters import SiteAdapter
from .site import Site, load_page

logger = logging.getLogger(__name__)

CONFIG_FILE = "config.toml"
TEMPLATE_EXTENSION = ".html"


class SiteLoader:
    def __init__(self, template_config: Optional[TemplateConfig] = None):
        self.template_config = template_config or TemplateConfig()

    def load(self, root) -> Site:
        root = Path(root)
        config_path = root / CONFIG_FILE
        if not config_path.is_file():
            raise SiteLoadError(str(root), f"missing {CONFIG_FILE}")

        try:
            with open(config_path, "rb") as f:
                raw = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise SiteLoadError(str(root), f"invalid {CONFIG_FILE}: {e}") from e

        domain = str(raw.get("domain") or root.name).lower()
        aliases = raw.get("aliases", [])
        if not isinstance(aliases, list):
            raise SiteLoadError(str(root), "'aliases' must be a list of host names")
        data = raw.get("data", {})
        if not isinstance(data, dict):
            raise SiteLoadError(str(root), "[data] must be a table")

        modified = datetime.fromtimestamp(config_path.stat().st_mtime, tz=timezone.utc)
        site = Site(
            id=str(raw.get("id") or domain),
            name=str(raw.get("name") or domain),
            domain=domain,
            root=root,
            base_url=str(raw.get("base_url") or f"https://{domain}"),
            aliases=[str(alias).lower() for alias in aliases],
            data=data,
            config=raw,
            created_at=raw.get("created_at") if isinstance(raw.get("created_at"), datetime) else modified,
            updated_at=modified,
        )

        site.engine = self._build_engine(site, raw.get("templates", {}))
        site.layouts = _read_templates(site.layouts_dir)
        site.partials = _read_templates(site.partials_dir)
        count = site.routes.scan(str(site.pages_dir), lambda rel_path: load_page(site.pages_dir, rel_path, site.name))
        site.databases = DatabaseManager(site.databases_dir)

        logger.info("Loaded site %s (%d pages, %d layouts, %d partials)",
                    domain, count, len(site.layouts), len(site.partials))
        return site

    def _build_engine(self, site: Site, overrides: Dict[str, Any]) -> Engine:
        defaults = self.template_config
        if not isinstance(overrides, dict):
            raise SiteLoadError(str(site.root), "[templates] must be a table")
        try:
            engine = Engine(EngineConfig(
                start_delim=overrides.get("start_delim", defaults.start_delim),
                end_delim=overrides.get("end_delim", defaults.end_delim),
                sanitize=bool(overrides.get("sanitize", defaults.sanitize)),
                global_data=site.data,
                max_iterations=int(overrides.get("max_iterations", defaults.max_iterations)),
                clear_blocks_on_render=defaults.clear_blocks_on_render,
            ))
        except (TypeError, ValueError) as e:
            raise SiteLoadError(str(site.root), f"invalid [templates] settings: {e}") from e
        engine.register_data_adapter("Site", SiteAdapter(site))
        return engine


def _read_templates(directory: Path) -> Dict[str, str]:
    """Map file stem to source for every template file directly in ``directory``"""
    templates: Dict[str, str] = {}
    if not directory.is_dir():
        return templates
    for path in sorted(directory.iterdir()):
        if path.is_file() and path.suffix == TEMPLATE_EXTENSION:
            templates[path.stem] = path.read_text(encoding="utf-8")
    return templates
