"""Command-line interface for the Tauri template MCP server."""

import argparse
import asyncio
import contextlib
import errno
import json
import logging
import signal
import sys
import threading
from typing import Any, Iterable, List, Optional, Sequence

from werkzeug.serving import make_server

from . import __version__ as PACKAGE_VERSION
from .api import create_app
from .config import Config
from .mcp import MCPError, MCPServer
from .resources import ResourceError
from .tools import ToolKind

logger = logging.getLogger(__name__)


class CLI:
    """Command-line interface for scaffolding projects and serving MCP."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize the CLI.

        Args:
            config_path: Path to the configuration file
        """
        self.config_path = config_path
        self.config = Config(config_path)

    def parse_args(self, args: List[str]) -> argparse.Namespace:
        """Parse command line arguments.

        Args:
            args: Command line arguments

        Returns:
            Parsed arguments
        """
        parser = self._build_parser()
        return parser.parse_args(args)

    def _build_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            description="Tauri Template MCP - scaffold and manage Tauri projects"
        )
        parser.add_argument(
            "--version", action="version", version=f"%(prog)s {PACKAGE_VERSION}"
        )
        subparsers = parser.add_subparsers(dest="command", help="Command to run")
        self._register_serve_command(subparsers)
        self._register_create_command(subparsers)
        self._register_tools_commands(subparsers)
        self._register_resources_commands(subparsers)
        self._register_env_commands(subparsers)
        self._register_config_commands(subparsers)
        return parser

    def _register_serve_command(self, subparsers) -> None:
        serve_parser = subparsers.add_parser(
            "serve", help="Start the HTTP and socket endpoints"
        )
        serve_parser.add_argument("--host", help="Bind host")
        serve_parser.add_argument("--port", type=int, help="HTTP port")
        serve_parser.add_argument(
            "--socket-port", dest="socket_port", type=int, help="Socket port"
        )
        serve_parser.add_argument(
            "--root", help="Directory holding the template and projects"
        )
        serve_parser.add_argument(
            "--log-level",
            dest="log_level",
            help="Log level for the server (e.g., DEBUG, INFO)",
        )
        serve_parser.add_argument(
            "--no-http",
            dest="no_http",
            action="store_true",
            help="Serve only the socket endpoint",
        )

    def _register_create_command(self, subparsers) -> None:
        create_parser = subparsers.add_parser(
            "create", help="Create a new project from the template"
        )
        create_parser.add_argument("name", help="Project name")
        create_parser.add_argument("--path", help="Target directory")
        create_parser.add_argument(
            "--force", action="store_true", help="Overwrite an existing directory"
        )
        create_parser.add_argument("--template", help="Template directory")
        create_parser.add_argument(
            "--skip-git",
            dest="skip_git",
            action="store_true",
            help="Do not initialize a git repository",
        )
        create_parser.add_argument(
            "--skip-install",
            dest="skip_install",
            action="store_true",
            help="Do not install dependencies",
        )

    def _register_tools_commands(self, subparsers) -> None:
        tools_parser = subparsers.add_parser("tools", help="Tool catalog")
        tools_subparsers = tools_parser.add_subparsers(dest="tools_command")
        list_parser = tools_subparsers.add_parser("list", help="List registered tools")
        list_parser.add_argument(
            "--json", action="store_true", help="Output descriptors in JSON format"
        )

    def _register_resources_commands(self, subparsers) -> None:
        resources_parser = subparsers.add_parser("resources", help="Resource catalog")
        resources_subparsers = resources_parser.add_subparsers(
            dest="resources_command"
        )
        list_parser = resources_subparsers.add_parser(
            "list", help="List registered resources"
        )
        list_parser.add_argument(
            "--json", action="store_true", help="Output descriptors in JSON format"
        )

        read_parser = resources_subparsers.add_parser("read", help="Read a resource")
        read_parser.add_argument("name", help="Resource name")
        read_parser.add_argument("--project", help="Project directory to inspect")
        read_parser.add_argument(
            "--root", help="Directory holding the template and projects"
        )

    def _register_env_commands(self, subparsers) -> None:
        env_parser = subparsers.add_parser("env", help="Development environment")
        env_subparsers = env_parser.add_subparsers(dest="env_command")
        check_parser = env_subparsers.add_parser(
            "check", help="Check toolchain versions"
        )
        check_parser.add_argument(
            "--json", action="store_true", help="Output the report in JSON format"
        )

    def _register_config_commands(self, subparsers) -> None:
        config_parser = subparsers.add_parser("config", help="Configuration management")
        config_subparsers = config_parser.add_subparsers(dest="config_command")

        show_parser = config_subparsers.add_parser(
            "show", help="Show configuration values"
        )
        show_parser.add_argument(
            "section", nargs="?", help="Configuration section to display"
        )
        show_parser.add_argument(
            "key", nargs="?", help="Specific key within the section"
        )
        show_parser.add_argument(
            "--json", action="store_true", help="Output configuration in JSON format"
        )

        set_parser = config_subparsers.add_parser(
            "set", help="Update a configuration value"
        )
        set_parser.add_argument("section", help="Configuration section")
        set_parser.add_argument("key", help="Configuration key")
        set_parser.add_argument("value", help="New value (use JSON for complex types)")

        config_subparsers.add_parser("path", help="Show configuration file path")

    def run(self, args: Optional[List[str]] = None) -> int:
        """Run the CLI with the given arguments.

        Args:
            args: Command line arguments, defaults to sys.argv[1:]

        Returns:
            Exit code
        """
        if args is None:
            args = sys.argv[1:]

        try:
            parsed_args = self.parse_args(args)
        except SystemExit as exc:
            return exc.code if isinstance(exc.code, int) else 1

        if not parsed_args.command:
            print("Error: No command specified")
            return 1

        handler_map = {
            "serve": self._serve,
            "create": self._create,
            "tools": self._handle_tools_command,
            "resources": self._handle_resources_command,
            "env": self._handle_env_command,
            "config": self._handle_config_command,
        }

        handler = handler_map.get(parsed_args.command)
        if handler is None:
            print(f"Error: Unknown command {parsed_args.command}")
            return 1

        return handler(parsed_args)

    def _build_server(self, root: Optional[str] = None) -> MCPServer:
        return MCPServer(self.config, root_path=root)

    def _serve(self, args: argparse.Namespace) -> int:
        try:
            log_level = self._resolve_log_level(
                args.log_level or self.config.get("server", "log_level", "INFO")
            )
        except ValueError as exc:
            print(f"Error: {exc}")
            return 1

        root_logger = logging.getLogger()
        root_logger.setLevel(log_level)
        for handler in root_logger.handlers:
            handler.setLevel(log_level)
        logging.getLogger("tauri_template_mcp").setLevel(log_level)

        host = args.host or self.config.get("server", "host", "localhost")
        port = args.port or int(self.config.get("server", "port", 3000))
        socket_port = args.socket_port or int(
            self.config.get("server", "socket_port", 3001)
        )

        logger.info(
            "Launching Tauri template MCP server version %s with log level %s",
            PACKAGE_VERSION,
            logging.getLevelName(log_level),
        )
        server = self._build_server(args.root)

        http_server = None
        if not args.no_http:
            try:
                http_server = make_server(host, port, create_app(server), threaded=True)
            except OSError as exc:
                self._print_bind_error("HTTP", host, port, exc)
                return 1
            threading.Thread(
                target=http_server.serve_forever, name="http-server", daemon=True
            ).start()
            print(f"HTTP server listening on http://{host}:{port}")

        print(f"Socket server listening on {host}:{socket_port}")

        async def runner() -> None:
            shutdown_event = asyncio.Event()
            loop = asyncio.get_running_loop()
            for signum in (signal.SIGINT, signal.SIGTERM):
                # Not available on Windows event loops; Ctrl+C still interrupts.
                with contextlib.suppress(NotImplementedError):
                    loop.add_signal_handler(signum, shutdown_event.set)
            await server.serve_tcp(
                host=host, port=socket_port, shutdown_event=shutdown_event
            )

        try:
            asyncio.run(runner())
        except OSError as exc:
            self._print_bind_error("Socket", host, socket_port, exc)
            return 1
        except KeyboardInterrupt:
            pass
        finally:
            if http_server is not None:
                http_server.shutdown()

        print("Server stopped")
        return 0

    @staticmethod
    def _print_bind_error(label: str, host: str, port: int, exc: OSError) -> None:
        if exc.errno == errno.EADDRINUSE:
            print(f"Error: {label} port {host}:{port} is already in use.")
        else:
            print(f"Error: could not start {label} server on {host}:{port}: {exc}")

    def _create(self, args: argparse.Namespace) -> int:
        server = self._build_server()
        result = server.scaffolder.create_project(
            args.name,
            args.path,
            args.force,
            args.template,
            init_git=not args.skip_git,
            install=not args.skip_install,
        )
        if not result.success:
            print(f"Error: {result.error}")
            return 1

        data = result.data or {}
        project_path = data.get("projectPath", args.name)
        print(data.get("message", f"Created {args.name}"))
        print(f"Location: {project_path}")
        print()
        print("Next steps:")
        print(f"  cd {project_path}")
        if args.skip_install:
            print("  pnpm install")
        print("  pnpm tauri dev")
        return 0

    def _handle_tools_command(self, args: argparse.Namespace) -> int:
        handler_map = {"list": self._tools_list}
        handler = handler_map.get(getattr(args, "tools_command", None))
        if handler is None:
            print(f"Error: Unknown tools command {getattr(args, 'tools_command', None)}")
            return 1
        return handler(args)

    def _tools_list(self, args: argparse.Namespace) -> int:
        tools = self._build_server().list_tools()
        if args.json:
            print(json.dumps(tools, indent=2))
            return 0
        self._print_table(
            ("Name", "Description"),
            ((tool["name"], tool["description"]) for tool in tools),
            title="Tools",
        )
        return 0

    def _handle_resources_command(self, args: argparse.Namespace) -> int:
        handler_map = {"list": self._resources_list, "read": self._resources_read}
        command = getattr(args, "resources_command", None)
        handler = handler_map.get(command)
        if handler is None:
            print(f"Error: Unknown resources command {command}")
            return 1
        return handler(args)

    def _resources_list(self, args: argparse.Namespace) -> int:
        resources = self._build_server().list_resources()
        if args.json:
            print(json.dumps(resources, indent=2))
            return 0
        self._print_table(
            ("Name", "URI", "Description"),
            (
                (resource["name"], resource["uri"], resource["description"])
                for resource in resources
            ),
            title="Resources",
        )
        return 0

    def _resources_read(self, args: argparse.Namespace) -> int:
        server = self._build_server(args.root)
        try:
            content = asyncio.run(server.read_resource(args.name, args.project))
        except (MCPError, ResourceError) as exc:
            print(f"Error: {exc}")
            return 1
        print(json.dumps(content, indent=2, default=str))
        return 0

    def _handle_env_command(self, args: argparse.Namespace) -> int:
        handler_map = {"check": self._env_check}
        command = getattr(args, "env_command", None)
        handler = handler_map.get(command)
        if handler is None:
            print(f"Error: Unknown env command {command}")
            return 1
        return handler(args)

    def _env_check(self, args: argparse.Namespace) -> int:
        server = self._build_server()
        result = asyncio.run(server.call_tool(ToolKind.CHECK_ENVIRONMENT.value, {}))
        if args.json:
            print(json.dumps(result.to_dict(), indent=2))
            return 0 if result.success else 1

        data = result.data or {}
        requirements = data.get("requirements", {})
        self._print_table(
            ("Tool", "Required", "Current"),
            (
                (key, entry.get("required"), entry.get("current") or "not found")
                for key, entry in requirements.items()
            ),
            title="Environment",
        )
        for issue in data.get("issues", []):
            print(f"  ✖ {issue}")
        print(data.get("message", ""))
        return 0 if result.success else 1

    def _handle_config_command(self, args: argparse.Namespace) -> int:
        """Handle configuration commands."""
        command = getattr(args, "config_command", None)
        handler_map = {
            "show": self._config_show,
            "set": self._config_set,
            "path": self._config_path,
        }
        handler = handler_map.get(command)
        if handler is None:
            print(f"Error: Unknown config command {command}")
            return 1
        return handler(args)

    def _config_show(self, args: argparse.Namespace) -> int:
        config = self.config
        section = getattr(args, "section", None)
        key = getattr(args, "key", None)
        data: Any

        if section is None:
            data = config.config
        else:
            section_data = config.get(section)
            if section_data is None:
                print(f"Error: Configuration section '{section}' not found")
                return 1
            if key is None:
                data = section_data
            else:
                value = config.get(section, key)
                if value is None:
                    print(f"Error: Key '{key}' not found in section '{section}'")
                    return 1
                data = value

        self._print_config_data(data, args.json)
        return 0

    def _config_set(self, args: argparse.Namespace) -> int:
        value = self._parse_config_value(args.value)
        self.config.set(args.section, args.key, value)
        if self.config.save():
            print(f"Updated {args.section}.{args.key} = {value}")
            return 0
        print("Error: Failed to save configuration")
        return 1

    def _config_path(self, _args: argparse.Namespace) -> int:
        print(self.config.config_path)
        return 0

    @staticmethod
    def _print_config_data(data: Any, as_json: bool):
        if as_json or isinstance(data, (dict, list)):
            print(json.dumps(data, indent=2, sort_keys=True, default=str))
        else:
            print(data)

    @staticmethod
    def _parse_config_value(raw: str) -> Any:
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            pass

        lowered = raw.lower()
        literal_map = {"true": True, "false": False, "null": None}
        if lowered in literal_map:
            return literal_map[lowered]
        return raw

    @staticmethod
    def _print_table(
        headers: Sequence[str],
        rows: Iterable[Sequence[Any]],
        *,
        title: Optional[str] = None,
    ) -> None:
        rendered_rows = [
            tuple("" if cell is None else str(cell) for cell in row) for row in rows
        ]
        widths = [len(str(header)) for header in headers]
        for row in rendered_rows:
            for index, cell in enumerate(row):
                widths[index] = max(widths[index], len(cell))

        horizontal = "+" + "+".join("-" * (width + 2) for width in widths) + "+"
        header_sep = "+" + "+".join("=" * (width + 2) for width in widths) + "+"

        def format_row(row_values: Sequence[str]) -> str:
            cells = [f" {value.ljust(widths[idx])} " for idx, value in enumerate(row_values)]
            return "|" + "|".join(cells) + "|"

        if title:
            print(title)
        print(horizontal)
        print(format_row(tuple(str(header) for header in headers)))
        print(header_sep)
        for row in rendered_rows:
            print(format_row(row))
        print(horizontal)

    @staticmethod
    def _resolve_log_level(value: str) -> int:
        if not value:
            raise ValueError("Log level cannot be empty")

        normalized = value.upper()
        if normalized == "WARN":
            normalized = "WARNING"

        level = logging.getLevelName(normalized)
        if isinstance(level, str):  # logging returns level name when unknown
            raise ValueError(
                "Invalid log level. Choose from CRITICAL, ERROR, WARNING, INFO, DEBUG, or NOTSET."
            )

        return level


def main() -> int:
    """Entry point for the CLI."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    cli = CLI()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
