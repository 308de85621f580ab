"""Tests for resource snapshots."""

import asyncio
import os
import shutil

import pytest

from tauri_template_mcp.environment import EnvironmentProbe
from tauri_template_mcp.resources import (
    TRUNCATED,
    BuildStatus,
    BuildTracker,
    ResourceError,
    ResourceKind,
    ResourceProvider,
    categorize_scripts,
    parse_cargo_dependencies,
)

from .conftest import CARGO_TOML


def _run(coro):
    return asyncio.run(coro)


@pytest.fixture()
def provider(project_dir, template_dir, fake_runner):
    return ResourceProvider(
        str(project_dir),
        str(template_dir),
        probe=EnvironmentProbe(fake_runner),
        build_tracker=BuildTracker(),
        max_depth=3,
    )


def test_structure_skips_hidden_and_pruned_entries(provider, project_dir):
    structure = provider.build_directory_structure(str(project_dir), 3)

    assert ".git" not in structure
    assert ".husky" not in structure
    assert "node_modules" not in structure
    assert "dist" not in structure
    assert structure["package.json"]["type"] == "file"
    assert structure["package.json"]["size"] > 0
    assert "modified" in structure["package.json"]
    assert structure["src-tauri"]["type"] == "directory"


def test_structure_truncates_past_max_depth(provider, project_dir):
    structure = provider.build_directory_structure(str(project_dir), 3)

    src = structure["src"]["children"]
    assert "main.ts" in src
    a = src["a"]["children"]
    b = a["b"]["children"]
    assert b["c"] == {"type": "directory", "children": TRUNCATED}


def test_structure_with_zero_depth_truncates_top_level_directories(provider, project_dir):
    structure = provider.build_directory_structure(str(project_dir), 0)
    assert structure["src"]["children"] == TRUNCATED
    assert structure["package.json"]["type"] == "file"


def test_project_scoped_resources_reject_invalid_path(provider, tmp_path):
    with pytest.raises(ResourceError, match="Invalid Tauri project path"):
        _run(provider.read(ResourceKind.TAURI_CONFIG, str(tmp_path)))


def test_tauri_config(provider, project_dir):
    content = _run(provider.read(ResourceKind.TAURI_CONFIG))

    assert content["package"]["name"] == "tauri-template"
    assert content["tauri"]["productName"] == "tauri-app"
    assert content["projectPath"] == str(project_dir)
    assert "timestamp" in content


def test_project_structure_uses_project_override(provider, template_dir):
    content = _run(provider.read(ResourceKind.PROJECT_STRUCTURE, str(template_dir)))
    assert content["projectPath"] == str(template_dir)
    assert "src-tauri" in content["structure"]


def test_scripts_info_buckets_scripts(provider):
    content = _run(provider.read(ResourceKind.SCRIPTS_INFO))
    scripts = content["scripts"]

    assert scripts["development"] == {"dev": "vite"}
    assert scripts["build"] == {"build": "vite build"}
    assert scripts["test"] == {"test": "vitest"}
    assert scripts["lint"] == {"lint": "eslint .", "format": "prettier -w ."}
    assert scripts["other"] == {"tauri": "tauri", "preview": "vite preview"}


def test_categorize_scripts_first_bucket_wins():
    buckets = categorize_scripts({"build:dev": "x", "test-lint": "y"})
    assert buckets["development"] == {"build:dev": "x"}
    assert buckets["test"] == {"test-lint": "y"}


def test_dependencies_info(provider):
    content = _run(provider.read(ResourceKind.DEPENDENCIES_INFO))

    assert content["npm"]["dependencies"] == {"@tauri-apps/api": "^2.0.0"}
    assert content["npm"]["devDependencies"] == {"@tauri-apps/cli": "^2.0.0"}
    assert content["cargo"] == {
        "serde": "1.0",
        "serde_json": "1",
        "tauri-plugin-shell": "2.0.1",
    }


def test_parse_cargo_dependencies_only_reads_dependencies_table():
    parsed = parse_cargo_dependencies(CARGO_TOML)
    assert "tauri-build" not in parsed
    assert "tauri" not in parsed
    assert "custom-protocol" not in parsed


def test_dependencies_info_without_cargo(provider, project_dir):
    (project_dir / "src-tauri" / "Cargo.toml").unlink()
    content = _run(provider.read(ResourceKind.DEPENDENCIES_INFO))
    assert content["cargo"] == {}


def test_build_status_defaults_to_idle(provider, project_dir):
    shutil.rmtree(project_dir / "dist")
    content = _run(provider.read(ResourceKind.BUILD_STATUS))

    assert content["status"] == "idle"
    assert content["hasBuildOutput"] is False
    assert content["buildInfo"] == {}


def test_build_status_reports_release_output(provider, project_dir):
    release = project_dir / "src-tauri" / "target" / "release"
    release.mkdir(parents=True)
    (release / "app").write_text("bin", encoding="utf-8")
    (release / "app.d").write_text("dep", encoding="utf-8")

    provider.build_tracker.mark_building()
    provider.build_tracker.mark_finished(True, output="done")
    content = _run(provider.read(ResourceKind.BUILD_STATUS))

    assert content["status"] == "success"
    assert content["output"] == "done"
    assert "startTime" in content and "endTime" in content
    assert content["hasBuildOutput"] is True
    assert content["buildInfo"]["distFiles"] == ["app", "app.d"]
    assert "buildTime" in content["buildInfo"]


def test_build_status_counts_dist_directory(provider, project_dir):
    assert os.path.isdir(project_dir / "dist")
    provider.build_tracker.update(BuildStatus(status="failed", error="boom"))
    content = _run(provider.read(ResourceKind.BUILD_STATUS))

    assert content["hasBuildOutput"] is True
    assert content["status"] == "failed"
    assert content["error"] == "boom"


def test_build_tracker_rejects_unknown_status():
    with pytest.raises(ValueError):
        BuildTracker().update(BuildStatus(status="exploded"))


def test_environment_info(provider):
    content = _run(provider.read(ResourceKind.ENVIRONMENT_INFO))

    assert content["nodeVersion"] == "v20.11.1"
    assert content["pnpmVersion"] == "9.1.0"
    assert content["rustVersion"].startswith("rustc 1.77.2")
    assert content["tauriVersion"] == "2.0.0"
    assert "platform" in content and "arch" in content
    assert "timestamp" in content


def test_template_info(provider, template_dir):
    content = _run(provider.read(ResourceKind.TEMPLATE_INFO))

    assert content["template"]["name"] == "tauri-template"
    assert content["template"]["description"] == "Template"
    assert content["templatePath"] == str(template_dir)
    assert "create.js" in content["structure"]


def test_template_info_missing_template(project_dir, tmp_path):
    provider = ResourceProvider(str(project_dir), str(tmp_path / "missing"))
    with pytest.raises(ResourceError, match="Template directory not found"):
        _run(provider.read(ResourceKind.TEMPLATE_INFO))
