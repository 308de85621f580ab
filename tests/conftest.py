"""Shared fixtures: a minimal on-disk template and a recording command runner."""

import json
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

from tauri_template_mcp.commands import CommandError, CommandRunner
from tauri_template_mcp.config import Config

CARGO_TOML = """[package]
name = "tauri-app"
version = "0.1.0"
edition = "2021"

[build-dependencies]
tauri-build = { version = "2", features = [] }

[dependencies]
tauri = { version = "2", features = [] }
serde = "1.0"
serde_json = "1"
# comment line
tauri-plugin-shell = "2.0.1"

[features]
custom-protocol = ["tauri/custom-protocol"]
"""


def write_template(root: Path) -> Path:
    """Lay out a small project template under ``root``."""

    root.mkdir(parents=True, exist_ok=True)
    (root / "package.json").write_text(
        json.dumps(
            {
                "name": "tauri-template",
                "version": "0.0.0",
                "description": "Template",
                "scripts": {
                    "dev": "vite",
                    "build": "vite build",
                    "test": "vitest",
                    "lint": "eslint .",
                    "format": "prettier -w .",
                    "tauri": "tauri",
                    "preview": "vite preview",
                },
                "dependencies": {"@tauri-apps/api": "^2.0.0"},
                "devDependencies": {"@tauri-apps/cli": "^2.0.0"},
            },
            indent=2,
        ),
        encoding="utf-8",
    )
    native = root / "src-tauri"
    native.mkdir()
    (native / "tauri.conf.json").write_text(
        json.dumps(
            {
                "productName": "tauri-app",
                "version": "0.0.0",
                "identifier": "com.tauri.dev",
                "app": {"windows": [{"title": "tauri-app", "width": 800}]},
            },
            indent=2,
        ),
        encoding="utf-8",
    )
    (native / "Cargo.toml").write_text(CARGO_TOML, encoding="utf-8")
    (root / "create.js").write_text("// template only\n", encoding="utf-8")
    (root / "create-package.json").write_text("{}\n", encoding="utf-8")

    hooks = root / ".husky"
    hooks.mkdir()
    (hooks / "pre-commit").write_text("#!/bin/sh\npnpm lint\n", encoding="utf-8")
    (hooks / "pre-commit").chmod(0o644)

    for excluded in (".git", "node_modules", "dist"):
        (root / excluded).mkdir()
        (root / excluded / "marker.txt").write_text("x", encoding="utf-8")

    deep = root / "src" / "a" / "b" / "c" / "d"
    deep.mkdir(parents=True)
    (deep / "deep.txt").write_text("deep", encoding="utf-8")
    (root / "src" / "main.ts").write_text("console.log('hi');\n", encoding="utf-8")
    return root


class FakeRunner(CommandRunner):
    """Record commands instead of running them."""

    def __init__(
        self,
        outputs: Optional[Dict[Tuple[str, ...], str]] = None,
        failures: Optional[Dict[Tuple[str, ...], CommandError]] = None,
    ):
        super().__init__()
        self.outputs = outputs or {}
        self.failures = failures or {}
        self.calls: List[Tuple[List[str], Optional[str]]] = []

    def run(self, command, args=None, cwd=None):
        cmd = [command, *(args or [])]
        self.calls.append((cmd, cwd))
        for prefix, error in self.failures.items():
            if tuple(cmd[: len(prefix)]) == prefix:
                raise error
        for prefix, output in self.outputs.items():
            if tuple(cmd[: len(prefix)]) == prefix:
                return output
        return ""


@pytest.fixture()
def template_dir(tmp_path):
    return write_template(tmp_path / "template")


@pytest.fixture()
def project_dir(tmp_path):
    """A directory that passes the project marker check."""

    return write_template(tmp_path / "existing-project")


@pytest.fixture()
def fake_runner():
    return FakeRunner(
        outputs={
            ("node",): "v20.11.1\n",
            ("pnpm",): "9.1.0\n",
            ("rustc",): "rustc 1.77.2 (25ef9e3d8 2024-04-09)\n",
        }
    )


@pytest.fixture()
def config(tmp_path, template_dir):
    cfg = Config(str(tmp_path / "config.yml"))
    cfg.set("project", "root_path", str(template_dir.parent))
    return cfg
