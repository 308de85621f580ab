"""HTTP surface for the Tauri template MCP server."""

from __future__ import annotations

import logging
from typing import Optional

from flask import Flask, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from .config import Config
from .mcp.server import MCPServer
from .project import utc_timestamp

logger = logging.getLogger(__name__)


def create_app(
    server: Optional[MCPServer] = None, config_path: Optional[str] = None
) -> Flask:
    """Create the Flask application fronting ``server``.

    Args:
        server: Dispatch server shared with the socket transport
        config_path: Configuration file used when ``server`` is omitted
    """
    if server is None:
        server = MCPServer(Config(config_path))

    app = Flask(__name__)
    app.config["MCP_SERVER"] = server
    app.config["MAX_CONTENT_LENGTH"] = 10 * 1024 * 1024
    CORS(app)

    @app.before_request
    def log_request():
        logger.info("%s %s", request.method, request.path)

    @app.get("/health")
    def health():
        return jsonify({"status": "ok", "timestamp": utc_timestamp()})

    @app.get("/tools")
    def list_tools():
        return jsonify({"tools": server.list_tools()})

    @app.get("/resources")
    def list_resources():
        return jsonify({"resources": server.list_resources()})

    @app.post("/invoke")
    async def invoke_tool():
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            body = {}

        tool_name = body.get("toolName")
        if not tool_name or not isinstance(tool_name, str):
            return jsonify({"error": "Tool name is required"}), 400

        if server.tools.resolve(tool_name) is None:
            return jsonify({"error": f"Tool '{tool_name}' not found"}), 404

        params = body.get("params")
        if params is None:
            params = {}
        if not isinstance(params, dict):
            return jsonify({"error": "params must be an object"}), 400

        try:
            result = await server.call_tool(tool_name, params)
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Error invoking tool %s", tool_name)
            return jsonify({"error": str(exc) or type(exc).__name__}), 500

        return jsonify(result.to_dict())

    @app.get("/resource/<name>")
    async def read_resource(name: str):
        descriptor = server.resources.resolve(name)
        if descriptor is None:
            return jsonify({"error": f"Resource '{name}' not found"}), 404

        try:
            content = await server.read_resource(name, request.args.get("projectPath"))
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Error getting resource %s", name)
            return jsonify({"error": str(exc) or type(exc).__name__}), 500

        return jsonify({"resource": descriptor.to_dict(), "content": content})

    @app.post("/rpc")
    async def rpc():
        response = await server.handle_message(request.get_data())
        return jsonify(response)

    @app.errorhandler(404)
    def not_found(_error):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(Exception)
    def handle_error(error):
        if isinstance(error, HTTPException):
            return jsonify({"error": error.description}), error.code
        logger.exception("Server error")
        return jsonify({"error": "Internal server error"}), 500

    return app
