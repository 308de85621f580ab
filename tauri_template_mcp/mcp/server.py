"""Request dispatch and socket transport for the Tauri template MCP server."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from .. import __version__ as PACKAGE_VERSION
from ..commands import CommandRunner
from ..config import Config
from ..environment import EnvironmentProbe
from ..resources import BuildTracker, ResourceKind, ResourceProvider
from ..results import ToolResult
from ..scaffold import ProjectScaffolder
from ..tools import Tool, ToolKind, build_tools
from .catalog import builtin_resources, builtin_tools
from .registry import (
    ResourceDescriptor,
    ResourceRegistry,
    ToolDescriptor,
    ToolRegistry,
)

logger = logging.getLogger(__name__)

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

UNKNOWN_ID = "unknown"

# Largest newline-framed message or header line the socket transport accepts.
STREAM_LIMIT = 16 * 1024 * 1024


@dataclass
class MCPError(Exception):
    """Structured error raised for MCP request failures."""

    code: int
    message: str
    data: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the error into a JSON-RPC compliant dictionary."""

        payload: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            payload["data"] = self.data
        return payload


class MCPServer:  # pylint: disable=too-many-instance-attributes
    """Dispatch tool and resource requests for one set of registries.

    Every instance owns its registries, so several servers can coexist in
    one process.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        *,
        root_path: Optional[str] = None,
        runner: Optional[CommandRunner] = None,
        probe: Optional[EnvironmentProbe] = None,
    ):
        """Initialize the server and register the built-in catalog.

        Args:
            config: Configuration (defaults are used when omitted)
            root_path: Directory holding the template and default project
            runner: Command runner shared by tools and probes
            probe: Environment probe override
        """
        self.config = config or Config()
        self.root_path = root_path or self.config.root_path
        template_path = self._template_path()

        self.runner = runner or CommandRunner()
        self.probe = probe or EnvironmentProbe(
            self.runner,
            requirements=self.config.get("environment", "requirements"),
            tauri_version=self.config.get("environment", "tauri_version", "2.0.0"),
        )
        self.build_tracker = BuildTracker()
        self.scaffolder = ProjectScaffolder(
            template_path,
            self.runner,
            version=self.config.get("project", "default_version", "0.1.0"),
            template_crate_name=self.config.get(
                "project", "template_crate_name", "tauri-app"
            ),
        )
        self.provider = ResourceProvider(
            self.root_path,
            template_path,
            probe=self.probe,
            build_tracker=self.build_tracker,
            max_depth=int(self.config.get("resources", "max_depth", 3)),
        )

        self.tools = ToolRegistry()
        self.resources = ResourceRegistry()
        self._tool_impls: Dict[ToolKind, Tool] = build_tools(
            self.scaffolder, self.probe, self.build_tracker, self.runner
        )
        self._methods: Dict[str, Callable[[Dict[str, Any]], Awaitable[Any]]] = {
            "tools/list": self._handle_tools_list,
            "resources/list": self._handle_resources_list,
            "tools/call": self._handle_tools_call,
            "resources/read": self._handle_resources_read,
        }

        self._shutdown_event: asyncio.Event | None = None
        self._connections: Set[asyncio.StreamWriter] = set()
        self._pending: Set[asyncio.Task] = set()

        for tool in builtin_tools():
            self.register_tool(tool)
        for resource in builtin_resources():
            self.register_resource(resource)

    def _template_path(self) -> str:
        return os.path.join(self.root_path, self.config.get("project", "template_dir"))

    def register_tool(self, descriptor: ToolDescriptor) -> None:
        """Add or replace a tool descriptor."""

        self.tools.register(descriptor)

    def register_resource(self, descriptor: ResourceDescriptor) -> None:
        """Add or replace a resource descriptor."""

        self.resources.register(descriptor)

    def list_tools(self) -> List[Dict[str, Any]]:
        return [descriptor.to_dict() for descriptor in self.tools.list()]

    def list_resources(self) -> List[Dict[str, Any]]:
        return [descriptor.to_dict() for descriptor in self.resources.list()]

    async def call_tool(self, name: str, arguments: Dict[str, Any]) -> ToolResult:
        """Invoke tool ``name``.

        Raises:
            MCPError: If no tool is registered under ``name``

        Exceptions raised by the tool itself propagate to the caller.
        """
        descriptor = self.tools.resolve(name)
        if descriptor is None:
            raise MCPError(code=METHOD_NOT_FOUND, message=f"Tool '{name}' not found")

        try:
            tool = self._tool_impls[ToolKind(name)]
        except (ValueError, KeyError) as exc:
            raise RuntimeError(f"No handler found for tool: {name}") from exc

        logger.info("Invoking tool: %s", name)
        result = await tool.invoke(arguments, descriptor.input_schema)
        if result.success:
            logger.info("Tool %s executed successfully", name)
        else:
            logger.warning("Tool %s reported failure: %s", name, result.error)
        return result

    async def read_resource(self, name: str, project_path: Optional[str] = None) -> Any:
        """Compute the content of resource ``name``.

        Raises:
            MCPError: If no resource is registered under ``name``
        """
        if self.resources.resolve(name) is None:
            raise MCPError(
                code=METHOD_NOT_FOUND, message=f"Resource '{name}' not found"
            )

        try:
            kind = ResourceKind(name)
        except ValueError as exc:
            raise RuntimeError(f"No handler found for resource: {name}") from exc

        logger.info("Reading resource: %s", name)
        return await self.provider.read(kind, project_path)

    async def handle(self, request: Any) -> Dict[str, Any]:
        """Route one request envelope and return its response envelope.

        Never raises: protocol problems and handler faults are both returned
        as error envelopes.
        """
        if not isinstance(request, dict):
            return self._error_response(
                UNKNOWN_ID,
                MCPError(code=INVALID_REQUEST, message="Request must be a JSON object"),
            )

        message_id = request.get("id")
        method = request.get("method")
        logger.info("MCP request %s (id=%s)", method, message_id)
        logger.debug("MCP request payload: %s", request)

        handler = self._methods.get(method) if isinstance(method, str) else None
        if handler is None:
            return self._error_response(
                message_id, MCPError(code=METHOD_NOT_FOUND, message="Method not found")
            )

        params = request.get("params")
        if params is None:
            params = {}
        if not isinstance(params, dict):
            return self._error_response(
                message_id,
                MCPError(code=INVALID_PARAMS, message="Params must be an object"),
            )

        try:
            result = await handler(params)
        except MCPError as error:
            logger.info("MCP error for %s (id=%s): %s", method, message_id, error)
            return self._error_response(message_id, error)
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Unhandled exception in MCP handler %s", method)
            return self._error_response(
                message_id,
                MCPError(code=INTERNAL_ERROR, message=str(exc) or type(exc).__name__),
            )

        logger.info("MCP response for %s (id=%s)", method, message_id)
        return {"jsonrpc": "2.0", "id": message_id, "result": result}

    async def handle_message(self, raw_message: str | bytes) -> Dict[str, Any]:
        """Decode one raw JSON message and dispatch it."""

        try:
            message = json.loads(raw_message)
        except (ValueError, TypeError) as exc:
            return self._error_response(
                UNKNOWN_ID,
                MCPError(code=PARSE_ERROR, message="Parse error", data={"detail": str(exc)}),
            )
        return await self.handle(message)

    async def _handle_tools_list(self, _params: Dict[str, Any]) -> Dict[str, Any]:
        return {"tools": self.list_tools()}

    async def _handle_resources_list(self, _params: Dict[str, Any]) -> Dict[str, Any]:
        return {"resources": self.list_resources()}

    async def _handle_tools_call(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Invoke a named tool and return its ToolResult, successful or not."""

        name = self._name_param(params)
        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise MCPError(code=INVALID_PARAMS, message="arguments must be an object")

        result = await self.call_tool(name, arguments)
        return result.to_dict()

    async def _handle_resources_read(self, params: Dict[str, Any]) -> Dict[str, Any]:
        name = self._name_param(params)
        project_path = params.get("projectPath")
        if project_path is not None and not isinstance(project_path, str):
            raise MCPError(code=INVALID_PARAMS, message="projectPath must be a string")

        content = await self.read_resource(name, project_path)
        return {"content": content}

    @staticmethod
    def _name_param(params: Dict[str, Any]) -> str:
        name = params.get("name")
        if not isinstance(name, str) or not name:
            raise MCPError(code=INVALID_PARAMS, message="name must be a non-empty string")
        return name

    def request_shutdown(self) -> bool:
        """Signal the active shutdown event if present."""

        event = self._shutdown_event
        if event is None or event.is_set():
            return False
        logger.info("Shutdown requested")
        event.set()
        return True

    async def serve_tcp(
        self,
        host: str = "127.0.0.1",
        port: int = 3001,
        *,
        shutdown_event: asyncio.Event | None = None,
        ready_event: asyncio.Event | None = None,
        limit: int = STREAM_LIMIT,
    ) -> None:
        """Serve newline or Content-Length framed envelopes on ``host:port``.

        Returns once ``shutdown_event`` is set and in-flight responses have
        been flushed. Lines longer than ``limit`` bytes are answered with an
        invalid-request error and skipped.
        """

        logger.info(
            "Starting MCP socket server version %s on %s:%s",
            PACKAGE_VERSION,
            host,
            port,
        )

        event = shutdown_event or asyncio.Event()
        self._shutdown_event = event

        async def handler(reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
            peer = writer.get_extra_info("peername")
            await self._serve_connection(reader, writer, peer)

        server = await asyncio.start_server(handler, host, port, limit=limit)
        sockets = ", ".join(str(sock.getsockname()) for sock in server.sockets or [])
        logger.info("MCP server listening on %s", sockets)
        if ready_event is not None:
            ready_event.set()

        try:
            await event.wait()
        except asyncio.CancelledError:  # pragma: no cover - triggered on cancellation
            pass
        finally:
            server.close()
            await self._drain_pending()
            for writer in list(self._connections):
                writer.close()
            await server.wait_closed()
            self._shutdown_event = None
            logger.info("MCP server stopped")

    async def _drain_pending(self) -> None:
        while self._pending:
            logger.info("Waiting for %s in-flight request(s)", len(self._pending))
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    @staticmethod
    def _error_response(message_id: Any, error: MCPError) -> Dict[str, Any]:
        """Return a JSON-RPC error response payload."""

        return {"jsonrpc": "2.0", "id": message_id, "error": error.to_dict()}

    @staticmethod
    async def _read_transport_message(
        reader: asyncio.StreamReader,
    ) -> tuple[Optional[str], str]:
        """Read a JSON message supporting newline and content-length framing."""
        first_line = await MCPServer._read_first_content_line(reader)
        if first_line is None:
            return None, "newline"

        if first_line.lower().startswith(b"content-length:"):
            payload = await MCPServer._read_content_length_body(reader, first_line)
            if payload is None:
                return None, "content-length"
            return payload, "content-length"

        return first_line.decode("utf-8", errors="replace").strip(), "newline"

    @staticmethod
    async def _read_line(reader: asyncio.StreamReader) -> bytes:
        """Read one line, or b"" at end of stream.

        Raises:
            MCPError: If the line exceeds the stream limit; the rest of it is
                discarded so the next line can still be read
        """
        try:
            return await reader.readuntil(b"\n")
        except asyncio.IncompleteReadError as exc:
            return exc.partial
        except asyncio.LimitOverrunError as exc:
            consumed = exc.consumed

        while True:
            await reader.readexactly(consumed)
            try:
                await reader.readuntil(b"\n")
                break
            except asyncio.IncompleteReadError:
                break
            except asyncio.LimitOverrunError as exc:
                consumed = exc.consumed
        raise MCPError(code=INVALID_REQUEST, message="Message exceeds size limit")

    @staticmethod
    async def _read_first_content_line(
        reader: asyncio.StreamReader,
    ) -> Optional[bytes]:
        while True:
            line = await MCPServer._read_line(reader)
            if not line:
                return None
            if line in {b"\r\n", b"\n", b""}:
                continue
            return line

    @staticmethod
    async def _read_content_length_body(
        reader: asyncio.StreamReader,
        header_line: bytes,
    ) -> Optional[str]:
        try:
            length = int(header_line.split(b":", 1)[1].strip())
        except ValueError as exc:
            raise MCPServer._invalid_content_length(header_line) from exc
        if length < 0:
            raise MCPServer._invalid_content_length(header_line)

        while True:
            separator = await MCPServer._read_line(reader)
            if not separator:
                return None
            if separator in {b"\r\n", b"\n", b""}:
                break

        body = await reader.readexactly(length)
        return body.decode("utf-8", errors="replace")

    @staticmethod
    def _invalid_content_length(header_line: bytes) -> MCPError:
        return MCPError(
            code=INVALID_REQUEST,
            message="Invalid Content-Length header",
            data={"detail": header_line.decode("utf-8", errors="replace").strip()},
        )

    @staticmethod
    def _encode_message(message: Dict[str, Any], framing: str) -> bytes:
        """Serialize ``message`` using the provided framing mode."""

        payload = json.dumps(message, default=str)
        if framing == "content-length":
            header = f"Content-Length: {len(payload.encode('utf-8'))}\r\n\r\n"
            return (header + payload).encode("utf-8")
        return (payload + "\n").encode("utf-8")

    async def _serve_connection(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        peer: Any,
    ) -> None:
        logger.info("MCP client connected: %s", peer)
        self._connections.add(writer)
        write_lock = asyncio.Lock()
        try:
            while True:
                try:
                    raw_message, framing = await self._read_transport_message(reader)
                except MCPError as transport_error:
                    logger.debug("Transport error for %s: %s", peer, transport_error)
                    await self._send(
                        writer,
                        write_lock,
                        self._error_response(UNKNOWN_ID, transport_error),
                        "newline",
                        peer,
                    )
                    continue
                except (ConnectionError, asyncio.IncompleteReadError) as error:
                    logger.warning("Connection error for %s: %s", peer, error)
                    break

                if raw_message is None:
                    break
                logger.debug("Raw MCP payload (%s) from %s: %s", framing, peer, raw_message)

                task = asyncio.create_task(
                    self._respond(raw_message, framing, writer, write_lock, peer)
                )
                self._pending.add(task)
                task.add_done_callback(self._pending.discard)
        finally:
            self._connections.discard(writer)
            writer.close()
            with contextlib.suppress(Exception):
                await writer.wait_closed()
            logger.info("MCP client disconnected: %s", peer)

    async def _respond(
        self,
        raw_message: str,
        framing: str,
        writer: asyncio.StreamWriter,
        write_lock: asyncio.Lock,
        peer: Any,
    ) -> None:
        response = await self.handle_message(raw_message)
        await self._send(writer, write_lock, response, framing, peer)

    async def _send(
        self,
        writer: asyncio.StreamWriter,
        write_lock: asyncio.Lock,
        response: Dict[str, Any],
        framing: str,
        peer: Any,
    ) -> None:
        encoded = self._encode_message(response, framing)
        async with write_lock:
            if writer.is_closing():
                logger.debug(
                    "Dropping response id=%s for disconnected client %s",
                    response.get("id"),
                    peer,
                )
                return
            try:
                writer.write(encoded)
                await writer.drain()
            except (ConnectionError, RuntimeError) as error:
                logger.warning("Failed to deliver response to %s: %s", peer, error)
