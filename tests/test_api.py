"""Tests for the HTTP surface."""

import json

import pytest

from tauri_template_mcp.api import create_app
from tauri_template_mcp.mcp.server import MCPServer, METHOD_NOT_FOUND


@pytest.fixture()
def server(config, fake_runner):
    return MCPServer(config, runner=fake_runner)


@pytest.fixture()
def client(server):
    app = create_app(server)
    app.config["TESTING"] = True
    return app.test_client()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.get_json()
    assert body["status"] == "ok"
    assert "timestamp" in body


def test_list_tools_and_resources(client):
    tools = client.get("/tools").get_json()["tools"]
    resources = client.get("/resources").get_json()["resources"]
    assert len(tools) == 7
    assert len(resources) == 7
    assert {"name", "description", "inputSchema"} <= set(tools[0])


def test_cors_headers(client):
    response = client.get("/health", headers={"Origin": "http://localhost:1420"})
    assert response.headers.get("Access-Control-Allow-Origin") in (
        "*",
        "http://localhost:1420",
    )


def test_invoke_requires_tool_name(client):
    response = client.post("/invoke", json={"params": {}})
    assert response.status_code == 400
    assert response.get_json() == {"error": "Tool name is required"}


def test_invoke_unknown_tool(client):
    response = client.post("/invoke", json={"toolName": "nope"})
    assert response.status_code == 404
    assert "nope" in response.get_json()["error"]


def test_invoke_rejects_non_object_params(client):
    response = client.post("/invoke", json={"toolName": "run-linting", "params": [1]})
    assert response.status_code == 400


def test_invoke_returns_tool_result(client, project_dir):
    response = client.post(
        "/invoke",
        json={"toolName": "get-project-info", "params": {"projectPath": str(project_dir)}},
    )
    assert response.status_code == 200
    body = response.get_json()
    assert body["success"] is True
    assert body["data"]["config"]["version"] == "0.0.0"


def test_invoke_tool_failure_is_200(client, tmp_path):
    response = client.post(
        "/invoke",
        json={"toolName": "run-linting", "params": {"projectPath": str(tmp_path)}},
    )
    assert response.status_code == 200
    assert response.get_json()["success"] is False


def test_invoke_exception_is_500(client, server, monkeypatch):
    async def explode(_name, _params):
        raise RuntimeError("kaboom")

    monkeypatch.setattr(server, "call_tool", explode)
    response = client.post("/invoke", json={"toolName": "check-environment"})
    assert response.status_code == 500
    assert response.get_json() == {"error": "kaboom"}


def test_read_resource(client, project_dir):
    response = client.get(
        "/resource/dependencies-info", query_string={"projectPath": str(project_dir)}
    )
    assert response.status_code == 200
    body = response.get_json()
    assert body["resource"]["uri"] == "tauri://dependencies-info"
    assert body["content"]["cargo"]["serde"] == "1.0"


def test_read_unknown_resource(client):
    response = client.get("/resource/nope")
    assert response.status_code == 404


def test_read_resource_failure_is_500(client, tmp_path):
    response = client.get(
        "/resource/tauri-config", query_string={"projectPath": str(tmp_path)}
    )
    assert response.status_code == 500
    assert "Invalid Tauri project path" in response.get_json()["error"]


def test_rpc_endpoint(client):
    response = client.post(
        "/rpc",
        data=json.dumps({"id": 5, "method": "nope"}),
        content_type="application/json",
    )
    assert response.status_code == 200
    body = response.get_json()
    assert body["id"] == 5
    assert body["error"]["code"] == METHOD_NOT_FOUND


def test_unknown_route(client):
    response = client.get("/does-not-exist")
    assert response.status_code == 404
    assert response.get_json() == {"error": "Not found"}


def test_method_not_allowed_passes_through(client):
    response = client.get("/invoke")
    assert response.status_code == 405
