"""Host to tenant mapping."""

import logging
import threading
from pathlib import Path
from typing import Dict, List, Optional

from ..exceptions import SiteLoadError, SiteNotFound
from ..http.request import normalize_host
from .loader import SiteLoader
from .site import Site

logger = logging.getLogger(__name__)


class SiteManager:
    """Loads every tenant below ``sites_path`` and resolves request hosts.

    A site answers for its domain and each alias. When ``default_site`` names
    a loaded domain, unknown hosts fall back to it.
    """

    def __init__(self, sites_path, default_site: Optional[str] = None,
                 loader: Optional[SiteLoader] = None):
        self.sites_path = Path(sites_path)
        self.default_site = default_site.lower() if default_site else None
        self.loader = loader or SiteLoader()
        self._sites: Dict[str, Site] = {}
        self._hosts: Dict[str, Site] = {}
        self._lock = threading.RLock()

    def load_all(self) -> List[Site]:
        """Load every tenant directory; directories that fail to load are logged and skipped"""
        if not self.sites_path.is_dir():
            logger.warning("Sites directory %s does not exist", self.sites_path)
            return []

        loaded = []
        for root in sorted(self.sites_path.iterdir()):
            if not root.is_dir() or root.name.startswith("."):
                continue
            try:
                site = self.loader.load(root)
            except SiteLoadError as e:
                logger.error("%s", e)
                continue
            self.register(site)
            loaded.append(site)

        logger.info("Loaded %d site(s) from %s", len(loaded), self.sites_path)
        return loaded

    def register(self, site: Site) -> None:
        with self._lock:
            self._sites[site.domain] = site
            for host in site.hosts:
                existing = self._hosts.get(host)
                if existing is not None and existing.domain != site.domain:
                    logger.warning("Host %s of %s is already served by %s", host, site.domain, existing.domain)
                    continue
                self._hosts[host] = site

    def unregister(self, domain: str) -> Optional[Site]:
        with self._lock:
            site = self._sites.pop(domain.lower(), None)
            if site is not None:
                for host, mapped in list(self._hosts.items()):
                    if mapped is site:
                        del self._hosts[host]
            return site

    def get_site(self, host: str) -> Site:
        key = normalize_host(host)
        with self._lock:
            site = self._hosts.get(key)
            if site is None and self.default_site:
                site = self._sites.get(self.default_site)
        if site is None:
            raise SiteNotFound(host)
        return site

    def reload_site(self, domain: str) -> Site:
        """Reload a tenant from disk, keeping its open database connections"""
        domain = domain.lower()
        with self._lock:
            current = self._sites.get(domain)
        root = current.root if current is not None else self.sites_path / domain

        site = self.loader.load(root)
        with self._lock:
            if current is not None:
                site.databases = current.databases
                self.unregister(current.domain)
            self.register(site)
        logger.info("Reloaded site %s", site.domain)
        return site

    @property
    def sites(self) -> List[Site]:
        with self._lock:
            return list(self._sites.values())

    def __contains__(self, host: str) -> bool:
        with self._lock:
            return normalize_host(host) in self._hosts

    def __len__(self) -> int:
        with self._lock:
            return len(self._sites)
