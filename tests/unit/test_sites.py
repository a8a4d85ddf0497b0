"""
Unit tests for tenant loading, host resolution and page rendering
"""
import pytest

from pysite.auth import User
from pysite.exceptions import SiteLoadError, SiteNotFound
from pysite.sites import (PageAdapter, PageRenderer, SiteAdapter, SiteLoader, SiteManager, UserAdapter,
                          load_page, page_title, split_front_matter)
from pysite.templating import ErrorKind


@pytest.mark.unit
class TestFrontMatter:
    """Test +++ TOML front matter"""

    def test_split(self):
        meta, body = split_front_matter('+++\ntitle = "Hi"\ntags = ["a"]\n+++\n<p>body</p>\n')
        assert meta == {"title": "Hi", "tags": ["a"]}
        assert body == "<p>body</p>\n"

    def test_no_front_matter(self):
        assert split_front_matter("<p>x</p>") == ({}, "<p>x</p>")

    def test_byte_order_mark(self):
        meta, body = split_front_matter('\ufeff+++\nlayout = "wide"\n+++\nx')
        assert meta == {"layout": "wide"}
        assert body == "x"

    def test_unterminated(self):
        with pytest.raises(ValueError):
            split_front_matter("+++\ntitle = 'x'\n")

    def test_invalid_toml(self):
        with pytest.raises(ValueError):
            split_front_matter("+++\ntitle = \n+++\n")

    def test_page_title(self):
        assert page_title("about-us.html", "Shop") == "About Us | Shop"
        assert page_title("blog/index.html", "Shop") == "Shop"

    def test_load_page(self, tmp_path, write_files):
        write_files(tmp_path, {"docs/getting_started.html": '+++\nrequire_auth = true\nslug = "start"\n+++\nbody'})
        page = load_page(tmp_path, "docs/getting_started.html", "Docs")
        assert page.title == "Getting Started | Docs"
        assert page.slug == "start"
        assert page.route == "/docs/getting_started"
        assert page.layout == "default"
        assert page.require_auth is True
        assert page.content == "body"
        assert page.meta["slug"] == "start"


@pytest.mark.unit
class TestSiteLoader:
    """Test SiteLoader class"""

    def test_load(self, site, sites_dir):
        assert site.id == "example"
        assert site.name == "Example Site"
        assert site.domain == "example.com"
        assert site.hosts == ["example.com", "www.example.com"]
        assert site.base_url == "https://example.com"
        assert site.data == {"tagline": "Hello tenants"}
        assert set(site.layouts) == {"default"}
        assert set(site.partials) == {"header"}
        assert site.root == sites_dir / "example.com"
        assert site.created_at is not None
        assert site.databases.directory == site.root / "databases"

    def test_routes(self, site):
        patterns = [route.pattern for route in site.routes]
        assert patterns == ["/", "/about", "/blog/{slug}", "/broken", "/members", "/raw"]
        page, params = site.find_page("/blog/hello-world")
        assert page.path == "blog/[slug].html"
        assert params == {"slug": "hello-world"}
        assert site.find_page("/nope") == (None, {})

    def test_defaults_from_directory_name(self, tmp_path, write_files):
        write_files(tmp_path / "Blog.Example", {"config.toml": ""})
        site = SiteLoader().load(tmp_path / "Blog.Example")
        assert site.domain == "blog.example"
        assert site.name == "blog.example"
        assert len(site.routes) == 0

    def test_template_overrides(self, tmp_path, write_files):
        write_files(tmp_path / "a.test", {
            "config.toml": '[templates]\nstart_delim = "[["\nend_delim = "]]"\nsanitize = false\n',
        })
        site = SiteLoader().load(tmp_path / "a.test")
        assert site.engine.render("[[ .Site.Domain ]] {{ x }}").output == "a.test {{ x }}"
        assert site.engine.render("[[ .v ]]", {"v": "<script>"}).output == "<script>"

    def test_missing_config(self, tmp_path):
        (tmp_path / "empty").mkdir()
        with pytest.raises(SiteLoadError) as exc_info:
            SiteLoader().load(tmp_path / "empty")
        assert "config.toml" in exc_info.value.reason

    @pytest.mark.parametrize("config_text", [
        "name = ",
        "aliases = 'x.com'",
        "data = 3",
        "[templates]\nstart_delim = ''",
        "[templates]\nmax_iterations = 'many'",
    ])
    def test_invalid_config(self, tmp_path, write_files, config_text):
        write_files(tmp_path / "bad", {"config.toml": config_text})
        with pytest.raises(SiteLoadError):
            SiteLoader().load(tmp_path / "bad")


@pytest.mark.unit
class TestSiteManager:
    """Test SiteManager class"""

    @pytest.fixture
    def manager(self, sites_dir, write_files):
        write_files(sites_dir / "broken", {"pages/index.html": "no config"})
        manager = SiteManager(sites_dir)
        manager.load_all()
        return manager

    def test_load_all_skips_broken(self, manager):
        assert len(manager) == 2
        assert sorted(site.domain for site in manager.sites) == ["example.com", "other.org"]

    def test_host_resolution(self, manager):
        assert manager.get_site("example.com").id == "example"
        assert manager.get_site("WWW.Example.COM:8080").id == "example"
        assert "other.org" in manager
        with pytest.raises(SiteNotFound) as exc_info:
            manager.get_site("unknown.test")
        assert exc_info.value.status_code == 404

    def test_default_site(self, sites_dir):
        manager = SiteManager(sites_dir, default_site="Other.org")
        manager.load_all()
        assert manager.get_site("unknown.test").domain == "other.org"

    def test_missing_sites_directory(self, tmp_path):
        assert SiteManager(tmp_path / "none").load_all() == []

    def test_duplicate_host_keeps_first(self, manager, tmp_path, write_files):
        write_files(tmp_path / "copy", {"config.toml": 'domain = "copy.test"\naliases = ["example.com"]'})
        manager.register(SiteLoader().load(tmp_path / "copy"))
        assert manager.get_site("example.com").domain == "example.com"
        assert manager.get_site("copy.test").domain == "copy.test"

    def test_unregister(self, manager):
        site = manager.unregister("example.com")
        assert site.domain == "example.com"
        assert "www.example.com" not in manager
        assert manager.unregister("example.com") is None

    def test_reload_site(self, manager, sites_dir):
        before = manager.get_site("example.com")
        (sites_dir / "example.com" / "pages" / "new.html").write_text("fresh")
        after = manager.reload_site("example.com")
        assert after is not before
        assert after.databases is before.databases
        assert after.find_page("/new")[0] is not None
        assert manager.get_site("www.example.com") is after


@pytest.mark.unit
class TestPageRenderer:
    """Test PageRenderer class"""

    def render(self, site, path, user=None):
        page, params = site.find_page(path)
        return PageRenderer(site).render(page, params, user)

    def test_page_in_layout(self, site):
        rendered = self.render(site, "/")
        assert rendered.ok, rendered.errors
        assert rendered.html.startswith("<html><head><title>Example Site</title></head>")
        assert "<header>Example Site</header>" in rendered.html
        assert "<h1>Welcome to Example Site</h1><p>Hello tenants</p>" in rendered.html

    def test_front_matter_title(self, site):
        rendered = self.render(site, "/about")
        assert "<title>About us</title>" in rendered.html
        assert "<p>About us</p>" in rendered.html

    def test_route_params(self, site):
        assert "<article>hello</article>" in self.render(site, "/blog/hello").html

    def test_params_are_sanitized(self, site):
        html = self.render(site, "/blog/<b onclick=steal()>x").html
        assert "onclick" not in html
        assert "<article><b>x</b></article>" in html

    def test_without_layout(self, site):
        rendered = self.render(site, "/raw")
        assert rendered.html == "plain raw"

    def test_errors_reported(self, site):
        rendered = self.render(site, "/broken")
        assert rendered.html == "ok"
        assert [error.kind for error in rendered.errors] == [ErrorKind.UNKNOWN_VARIABLE]

    def test_missing_layout_falls_back_to_page(self, sites_dir):
        other = SiteLoader().load(sites_dir / "other.org")
        page, _ = other.find_page("/")
        assert PageRenderer(other).render(page).html == "Other Other"

    def test_anonymous_user(self, site):
        assert "<p>Hi </p>" in self.render(site, "/members").html

    def test_requests_do_not_share_blocks(self, site):
        self.render(site, "/about")
        assert site.engine.get_block("content") is None
        assert site.engine.new_state().get_block("content") is None


@pytest.mark.unit
class TestSiteAdapters:
    """Test Site, Page and User data adapters"""

    def test_site_adapter(self, site):
        adapter = SiteAdapter(site)
        assert adapter.get("Site", "Name") == ("Example Site", True)
        assert adapter.get("Site", "Data", "tagline") == ("Hello tenants", True)
        assert adapter.get("Site", "Nope") == (None, False)
        value, found = adapter.get("Site")
        assert found and value["Domain"] == "example.com"

    def test_page_adapter(self, site):
        page, _ = site.find_page("/about")
        adapter = PageAdapter(page, {"x": "1"})
        assert adapter.get("Page", "Title") == ("About us", True)
        assert adapter.get("Page", "Params", "x") == ("1", True)
        assert adapter.get("Page", "Meta", "title") == ("About us", True)

    def test_user_adapter(self):
        assert UserAdapter(None).get("User", "Authenticated") == (False, True)
        user = User(id=7, uuid="u-7", username="ada", email="ada@example.com", role="editor")
        adapter = UserAdapter(user)
        assert adapter.get("User", "Authenticated") == (True, True)
        assert adapter.get("User", "Role") == ("editor", True)

    def test_page_to_dict(self, site):
        page, _ = site.find_page("/members")
        data = page.to_dict()
        assert data["route"] == "/members"
        assert data["require_auth"] is True
        assert data["layout"] == "default"
        assert "content" not in data
