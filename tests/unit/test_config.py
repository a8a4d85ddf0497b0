"""
Unit tests for configuration, logging setup, exceptions and the CLI
"""
import json
import logging

import pytest

from pysite.cli import PysiteCLI, main
from pysite.config import AppConfig, ConfigPresets, ServerConfig, TemplateConfig, get_config_from_environment
from pysite.config.logging import configure_logging
from pysite.exceptions import BadRequest, NotFound, SiteLoadError, SiteNotFound


@pytest.mark.unit
class TestConfig:
    """Test configuration dataclasses"""

    def test_defaults(self, monkeypatch):
        for name in ("HOST", "PORT", "SITES_PATH", "TEMPLATE_SANITIZE", "USE_UVLOOP"):
            monkeypatch.delenv(name, raising=False)
        config = AppConfig()
        assert config.host == "127.0.0.1"
        assert config.port == 8000
        assert config.sites.path == "sites"
        assert config.templates.sanitize is True
        assert config.server.uvloop is False
        assert config.sessions.cookie_name == "pysite_session"

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("PORT", "9090")
        monkeypatch.setenv("SITES_PATH", "/srv/sites")
        monkeypatch.setenv("TEMPLATE_SANITIZE", "off")
        monkeypatch.setenv("USE_UVLOOP", "yes")
        config = AppConfig()
        assert config.port == 9090
        assert config.sites.path == "/srv/sites"
        assert config.templates.sanitize is False
        assert config.server.uvloop is True

    def test_validation(self):
        with pytest.raises(ValueError):
            AppConfig(server=ServerConfig(port=70000))
        with pytest.raises(ValueError):
            AppConfig(templates=TemplateConfig(max_iterations=0))

    @pytest.mark.parametrize("env,debug", [
        ("production", False),
        ("testing", True),
        ("development", True),
        ("anything", True),
    ])
    def test_presets(self, monkeypatch, env, debug):
        monkeypatch.setenv("PYSITE_ENV", env)
        assert get_config_from_environment().debug is debug

    def test_production_cookies_secure(self):
        assert ConfigPresets.production().sessions.secure is True


@pytest.mark.unit
class TestLogging:
    """Test logging setup"""

    def test_configure_replaces_handlers(self, tmp_path):
        config = ConfigPresets.testing().logging
        config.file = str(tmp_path / "pysite.log")
        logger = configure_logging(config)
        configure_logging(config)
        marked = [handler for handler in logger.handlers if getattr(handler, "_pysite_handler", False)]
        assert len(marked) == 2
        assert logger.level == logging.ERROR
        assert configure_logging(config, debug=True).level == logging.DEBUG

        for handler in list(logger.handlers):
            if getattr(handler, "_pysite_handler", False):
                logger.removeHandler(handler)
                handler.close()


@pytest.mark.unit
class TestExceptions:
    """Test exception hierarchy"""

    def test_http_exceptions(self):
        assert BadRequest().status_code == 400
        error = NotFound("gone")
        assert error.detail == "gone"
        assert error.to_dict()["error"]["code"] == "not_found"
        assert json.loads(error.to_json())["error"]["status_code"] == 404

    def test_site_errors(self):
        error = SiteNotFound("x.test")
        assert isinstance(error, NotFound)
        assert error.host == "x.test"
        assert error.error_code == "site_not_found"
        load_error = SiteLoadError("/srv/a", "missing config.toml")
        assert "missing config.toml" in str(load_error)


@pytest.mark.unit
class TestCLI:
    """Test the command line interface"""

    def test_no_command(self, capsys):
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out

    def test_render(self, tmp_path, capsys):
        template = tmp_path / "t.html"
        template.write_text("Hello {{ .Name }}!")
        assert main(["render", str(template), "--data", '{"Name": "World"}']) == 0
        assert capsys.readouterr().out == "Hello World!"

    def test_render_reports_errors(self, tmp_path, capsys):
        template = tmp_path / "t.html"
        template.write_text("a{{ .missing }}b")
        assert main(["render", str(template)]) == 1
        captured = capsys.readouterr()
        assert captured.out == "ab"
        assert "unknown-variable" in captured.err

    def test_render_invalid_data(self, tmp_path, capsys):
        template = tmp_path / "t.html"
        template.write_text("x")
        assert main(["render", str(template), "--data", "[1]"]) == 2
        assert "JSON object" in capsys.readouterr().err

    def test_routes(self, sites_dir, capsys):
        assert main(["routes", "example.com", "--sites", str(sites_dir)]) == 0
        out = capsys.readouterr().out
        assert "/blog/{slug}" in out
        assert "login required" in out

    def test_routes_unknown_site(self, sites_dir, capsys):
        assert main(["routes", "nope.test", "--sites", str(sites_dir)]) == 1

    def test_serve_validation(self, tmp_path):
        cli = PysiteCLI()
        assert cli.run(["serve", "--port", "99999"]) == 2
        assert cli.run(["serve", "--sites", str(tmp_path / "missing")]) == 2
