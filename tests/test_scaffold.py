"""Tests for project scaffolding."""

import json
import os
import stat

import pytest

from tauri_template_mcp.commands import CommandError
from tauri_template_mcp.project import validate_project_path
from tauri_template_mcp.scaffold import (
    ProjectScaffolder,
    crate_name_for,
    validate_package_name,
)

from .conftest import FakeRunner


@pytest.mark.parametrize(
    "name",
    ["my-app", "app2", "some.thing", "a_b", "x"],
)
def test_valid_package_names(name):
    assert validate_package_name(name) == []


@pytest.mark.parametrize(
    "name, expected",
    [
        (None, "name cannot be null"),
        (42, "name must be a string"),
        ("", "name length must be greater than zero"),
        (".hidden", "name cannot start with a period"),
        ("_private", "name cannot start with an underscore"),
        (" spaced", "name cannot contain leading or trailing spaces"),
        ("node_modules", "node_modules is a blacklisted name"),
        ("http", "http is a core module name"),
        ("MyApp", "name can no longer contain capital letters"),
        ("what!", "name can no longer contain special characters (\"~'!()*\")"),
        ("has space", "name can only contain URL-friendly characters"),
    ],
)
def test_invalid_package_names(name, expected):
    assert expected in validate_package_name(name)


def test_package_name_length_limit():
    assert validate_package_name("a" * 50, max_length=50) == []
    errors = validate_package_name("a" * 51, max_length=50)
    assert errors == ["name can no longer contain more than 50 characters"]


def test_scoped_names_are_not_url_friendly():
    assert "name can only contain URL-friendly characters" in validate_package_name(
        "@scope/pkg"
    )


def test_crate_name_replaces_hyphens():
    assert crate_name_for("my-cool-app") == "my_cool_app"


def _scaffolder(template_dir, runner=None):
    return ProjectScaffolder(str(template_dir), runner or FakeRunner())


def test_create_project_rewrites_identity(tmp_path, template_dir):
    runner = FakeRunner()
    target = tmp_path / "out" / "my-app"
    result = _scaffolder(template_dir, runner).create_project(
        "my-app", str(target)
    )

    assert result.success, result.error
    assert result.data["projectName"] == "my-app"
    assert result.data["projectPath"] == str(target)
    assert validate_project_path(str(target))

    package = json.loads((target / "package.json").read_text(encoding="utf-8"))
    assert package["name"] == "my-app"
    assert package["version"] == "0.1.0"

    config = json.loads(
        (target / "src-tauri" / "tauri.conf.json").read_text(encoding="utf-8")
    )
    assert config["productName"] == "my-app"
    assert config["version"] == "0.1.0"
    assert config["identifier"] == "com.my-app.my-app"
    assert config["app"]["windows"][0]["title"] == "my-app"
    assert config["app"]["windows"][0]["width"] == 800

    cargo = (target / "src-tauri" / "Cargo.toml").read_text(encoding="utf-8")
    assert 'name = "my_app"' in cargo
    assert 'name = "tauri-app"' not in cargo

    assert [call[0] for call in runner.calls] == [["git", "init"], ["pnpm", "install"]]
    assert all(call[1] == str(target) for call in runner.calls)


def test_create_project_skips_excluded_and_template_only_files(tmp_path, template_dir):
    target = tmp_path / "app"
    result = _scaffolder(template_dir).create_project("app", str(target))

    assert result.success
    for name in (".git", "node_modules", "dist", "create.js", "create-package.json"):
        assert not (target / name).exists(), name
    assert (target / "src" / "a" / "b" / "c" / "d" / "deep.txt").is_file()


def test_create_project_makes_hooks_executable(tmp_path, template_dir):
    target = tmp_path / "app"
    assert _scaffolder(template_dir).create_project("app", str(target)).success

    mode = os.stat(target / ".husky" / "pre-commit").st_mode
    assert mode & stat.S_IXUSR


def test_create_project_optional_steps(tmp_path, template_dir):
    runner = FakeRunner()
    result = _scaffolder(template_dir, runner).create_project(
        "app", str(tmp_path / "app"), init_git=False, install=False
    )
    assert result.success
    assert runner.calls == []


def test_create_project_rejects_invalid_name(tmp_path, template_dir):
    result = _scaffolder(template_dir).create_project("Bad Name", str(tmp_path / "x"))
    assert not result.success
    assert result.error.startswith("Invalid project name:")
    assert not (tmp_path / "x").exists()


def test_create_project_rejects_long_name(tmp_path, template_dir):
    result = _scaffolder(template_dir).create_project("a" * 51, str(tmp_path / "x"))
    assert not result.success
    assert "50 characters" in result.error


def test_existing_directory_requires_force(tmp_path, template_dir):
    target = tmp_path / "app"
    target.mkdir()
    (target / "keep.txt").write_text("keep", encoding="utf-8")

    result = _scaffolder(template_dir).create_project("app", str(target))

    assert not result.success
    assert "already exists" in result.error
    assert (target / "keep.txt").read_text(encoding="utf-8") == "keep"


def _snapshot(root):
    """Map each relative path under ``root`` to its bytes (None for directories)."""

    snapshot = {}
    for path in sorted(root.rglob("*")):
        relative = path.relative_to(root).as_posix()
        snapshot[relative] = None if path.is_dir() else path.read_bytes()
    return snapshot


def test_force_replaces_existing_directory(tmp_path, template_dir):
    target = tmp_path / "app"
    scaffolder = _scaffolder(template_dir)
    assert scaffolder.create_project("app", str(target)).success
    first = _snapshot(target)
    (target / "stale.txt").write_text("old", encoding="utf-8")

    again = scaffolder.create_project("app", str(target), force=True)

    assert again.success
    assert not (target / "stale.txt").exists()
    assert validate_project_path(str(target))
    assert _snapshot(target) == first


def test_repeated_forced_creates_converge(tmp_path, template_dir):
    target = tmp_path / "app"
    scaffolder = _scaffolder(template_dir)
    assert scaffolder.create_project("app", str(target), force=True).success
    first = _snapshot(target)

    assert scaffolder.create_project("app", str(target), force=True).success

    assert _snapshot(target) == first
    assert "package.json" in first


def test_missing_template_leaves_target_untouched(tmp_path):
    target = tmp_path / "app"
    target.mkdir()
    (target / "keep.txt").write_text("keep", encoding="utf-8")

    result = ProjectScaffolder(str(tmp_path / "nope"), FakeRunner()).create_project(
        "app", str(target), force=True
    )

    assert not result.success
    assert "Template directory not found" in result.error
    assert (target / "keep.txt").exists()


def test_template_path_override(tmp_path, template_dir):
    scaffolder = ProjectScaffolder(str(tmp_path / "nope"), FakeRunner())
    result = scaffolder.create_project(
        "app", str(tmp_path / "app"), template_path=str(template_dir)
    )
    assert result.success


def test_missing_window_entry_fails(tmp_path, template_dir):
    config_path = template_dir / "src-tauri" / "tauri.conf.json"
    config_path.write_text(json.dumps({"app": {"windows": []}}), encoding="utf-8")

    result = _scaffolder(template_dir).create_project("app", str(tmp_path / "app"))

    assert not result.success
    assert "app.windows" in result.error


def test_missing_native_manifest_fails(tmp_path, template_dir):
    (template_dir / "src-tauri" / "Cargo.toml").unlink()

    result = _scaffolder(template_dir).create_project("app", str(tmp_path / "app"))

    assert not result.success
    assert "Native manifest not found" in result.error


def test_unmatched_crate_name_is_left_alone(tmp_path, template_dir):
    cargo = template_dir / "src-tauri" / "Cargo.toml"
    cargo.write_text('[package]\nname = "other"\n', encoding="utf-8")

    target = tmp_path / "app"
    result = _scaffolder(template_dir).create_project("app", str(target))

    assert result.success
    assert 'name = "other"' in (target / "src-tauri" / "Cargo.toml").read_text(
        encoding="utf-8"
    )


def test_command_failure_is_reported(tmp_path, template_dir):
    runner = FakeRunner(
        failures={
            ("pnpm", "install"): CommandError(
                ["pnpm", "install"],
                "Command failed with exit code 1: pnpm install",
                returncode=1,
                stderr="ERR_PNPM_FETCH_404",
            )
        }
    )
    result = _scaffolder(template_dir, runner).create_project(
        "app", str(tmp_path / "app")
    )

    assert not result.success
    assert "ERR_PNPM_FETCH_404" in result.error
