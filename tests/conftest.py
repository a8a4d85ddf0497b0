"""
Pysite Test Configuration and Fixtures
"""
from pathlib import Path
from typing import AsyncGenerator

import pytest
from faker import Faker

from pysite import Application, ConfigPresets
from pysite.sites import SiteLoader, SiteManager

DEFAULT_LAYOUT = """<html><head><title>{{ .Page.Title }}</title></head>
<body>{{ template "header" }}{{ block "content" . }}no content{{ end }}</body></html>"""

EXAMPLE_SITE = {
    "config.toml": """
id = "example"
name = "Example Site"
domain = "example.com"
aliases = ["www.example.com"]

[data]
tagline = "Hello tenants"
""",
    "layouts/default.html": DEFAULT_LAYOUT,
    "partials/header.html": "<header>{{ .Site.Name }}</header>",
    "pages/index.html": '{{ define "content" }}<h1>Welcome to {{ .Site.Name }}</h1><p>{{ .tagline }}</p>{{ end }}',
    "pages/about.html": '+++\ntitle = "About us"\n+++\n{{ define "content" }}<p>{{ .Page.Title }}</p>{{ end }}',
    "pages/blog/[slug].html": '{{ define "content" }}<article>{{ .Page.Params.slug }}</article>{{ end }}',
    "pages/members.html": ('+++\nrequire_auth = true\n+++\n'
                           '{{ define "content" }}<p>Hi {{ .User.Username }}</p>{{ end }}'),
    "pages/raw.html": '+++\nlayout = ""\n+++\nplain {{ .Page.Slug }}',
    "pages/broken.html": '+++\nlayout = ""\n+++\n{{ .missing }}ok',
    "public/style.css": "body { color: black; }",
}

OTHER_SITE = {
    "config.toml": 'name = "Other"\ndomain = "other.org"\n',
    "pages/index.html": "Other {{ .Site.Name }}",
}


def write_tree(root: Path, files: dict) -> Path:
    for rel_path, content in files.items():
        path = root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def write_files():
    """Write a {relative path: content} tree below a directory."""
    return write_tree


@pytest.fixture
def faker():
    """Faker instance for generating test data."""
    return Faker()


@pytest.fixture
def sites_dir(tmp_path) -> Path:
    """Sites directory with two tenants."""
    sites = tmp_path / "sites"
    write_tree(sites / "example.com", EXAMPLE_SITE)
    write_tree(sites / "other.org", OTHER_SITE)
    return sites


@pytest.fixture
def config(sites_dir):
    """Test application configuration."""
    config = ConfigPresets.testing()
    config.sites.path = str(sites_dir)
    config.sites.default_site = None
    return config


@pytest.fixture
def site(sites_dir, config):
    """The example.com tenant, loaded from disk."""
    return SiteLoader(config.templates).load(sites_dir / "example.com")


@pytest.fixture
async def app(config) -> AsyncGenerator[Application, None]:
    """Started application serving the test sites."""
    manager = SiteManager(config.sites.path, loader=SiteLoader(config.templates))
    app = Application(config, site_manager=manager)
    await app.startup()
    yield app
    await app.shutdown()


@pytest.fixture
async def client(app):
    """Test client for making HTTP requests to example.com."""
    from httpx import ASGITransport, AsyncClient

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://example.com") as client:
        yield client


# Custom markers
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "database: Database-related tests")
