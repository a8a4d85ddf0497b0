#!/usr/bin/env python3
"""
Pysite CLI - serve tenants, render templates, inspect routes
"""
import argparse
import json
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .config import ConfigPresets, get_config_from_environment
from .exceptions import SiteLoadError
from .sites import SiteLoader
from .templating import Engine, EngineConfig


class CommandRegistry:
    """Registry for CLI commands with validation and execution logic"""

    def __init__(self):
        self.commands: Dict[str, Dict[str, Callable]] = {}

    def register(self, name: str, validator: Optional[Callable] = None, executor: Optional[Callable] = None):
        self.commands[name] = {'validator': validator, 'executor': executor}

    def execute(self, name: str, args: Any) -> int:
        """Validate and run a command; returns the process exit status"""
        command = self.commands[name]
        if command['validator']:
            errors = command['validator'](args)
            if errors:
                for error in errors:
                    print(f"error: {error}", file=sys.stderr)
                return 2
        return command['executor'](args)


class PysiteCLI:
    """Command Line Interface for pysite"""

    def __init__(self):
        self.registry = CommandRegistry()
        self.parser = self._create_parser()
        self._register_commands()

    def _create_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="pysite",
            description="Multi-tenant CMS server",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""Examples:
  pysite serve --sites ./sites --port 8080
  pysite render page.html --data '{"Name": "World"}'
  pysite routes example.com --sites ./sites
""",
        )
        subparsers = parser.add_subparsers(dest='command')

        serve_parser = subparsers.add_parser('serve', help='Run the server')
        serve_parser.add_argument('--host', help='Bind address')
        serve_parser.add_argument('--port', type=int, help='Bind port')
        serve_parser.add_argument('--sites', help='Directory containing one folder per site')
        serve_parser.add_argument('--debug', action='store_true', help='Enable debug mode')

        render_parser = subparsers.add_parser('render', help='Render a template file to stdout')
        render_parser.add_argument('template', help='Template file, or - for stdin')
        render_parser.add_argument('--data', default='{}', help='JSON object used as local data')
        render_parser.add_argument('--no-sanitize', action='store_true', help='Emit interpolated values raw')

        routes_parser = subparsers.add_parser('routes', help="List a site's page routes")
        routes_parser.add_argument('domain', help='Site directory name')
        routes_parser.add_argument('--sites', help='Directory containing one folder per site')

        return parser

    def _register_commands(self):
        self.registry.register('serve', self._validate_serve_args, self.cmd_serve)
        self.registry.register('render', self._validate_render_args, self.cmd_render)
        self.registry.register('routes', None, self.cmd_routes)

    def _validate_serve_args(self, args) -> List[str]:
        errors = []
        if args.port is not None and not 0 <= args.port <= 65535:
            errors.append(f"invalid port {args.port}")
        if args.sites and not Path(args.sites).is_dir():
            errors.append(f"sites directory {args.sites} does not exist")
        return errors

    def _validate_render_args(self, args) -> List[str]:
        errors = []
        if args.template != '-' and not Path(args.template).is_file():
            errors.append(f"template {args.template} does not exist")
        try:
            data = json.loads(args.data)
        except json.JSONDecodeError as e:
            errors.append(f"--data is not valid JSON: {e}")
        else:
            if not isinstance(data, dict):
                errors.append("--data must be a JSON object")
        return errors

    def run(self, argv: Optional[List[str]] = None) -> int:
        args = self.parser.parse_args(argv)
        if not args.command:
            self.parser.print_help()
            return 1
        return self.registry.execute(args.command, args)

    def cmd_serve(self, args) -> int:
        from .server import Application, Server

        config = ConfigPresets.development() if args.debug else get_config_from_environment()
        if args.host:
            config.server.host = args.host
        if args.port is not None:
            config.server.port = args.port
        if args.sites:
            config.sites.path = args.sites
        if args.debug:
            config.debug = True

        Server(Application(config), config).run()
        return 0

    def cmd_render(self, args) -> int:
        if args.template == '-':
            source = sys.stdin.read()
        else:
            source = Path(args.template).read_text(encoding='utf-8')

        engine = Engine(EngineConfig(sanitize=not args.no_sanitize))
        output, errors = engine.render(source, json.loads(args.data))
        sys.stdout.write(output)
        for error in errors:
            print(f"{args.template}: {error}", file=sys.stderr)
        return 1 if errors else 0

    def cmd_routes(self, args) -> int:
        config = get_config_from_environment()
        sites_path = Path(args.sites or config.sites.path)
        try:
            site = SiteLoader(config.templates).load(sites_path / args.domain)
        except SiteLoadError as e:
            print(f"error: {e.message}", file=sys.stderr)
            return 1

        for route in site.routes:
            page = route.page
            flags = " (login required)" if page.require_auth else ""
            print(f"{route.pattern:<40} {page.path:<40} layout={page.layout or '-'}{flags}")
        return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point"""
    cli = PysiteCLI()
    return cli.run(argv)


if __name__ == '__main__':
    sys.exit(main())
