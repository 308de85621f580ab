"""Create new projects from the Tauri template."""

import logging
import os
import re
import shutil
import stat
from typing import List, Optional
from urllib.parse import quote

from .commands import CommandError, CommandRunner
from .project import APP_CONFIG, NATIVE_MANIFEST, PACKAGE_MANIFEST, read_json, write_json
from .results import ToolResult

logger = logging.getLogger(__name__)

MAX_PACKAGE_NAME_LENGTH = 214

BLACKLISTED_NAMES = {"node_modules", "favicon.ico"}

NODE_CORE_MODULES = {
    "assert",
    "async_hooks",
    "buffer",
    "child_process",
    "cluster",
    "console",
    "constants",
    "crypto",
    "dgram",
    "diagnostics_channel",
    "dns",
    "domain",
    "events",
    "fs",
    "http",
    "http2",
    "https",
    "inspector",
    "module",
    "net",
    "os",
    "path",
    "perf_hooks",
    "process",
    "punycode",
    "querystring",
    "readline",
    "repl",
    "stream",
    "string_decoder",
    "sys",
    "timers",
    "tls",
    "trace_events",
    "tty",
    "url",
    "util",
    "v8",
    "vm",
    "wasi",
    "worker_threads",
    "zlib",
}

SPECIAL_CHARACTERS = set("~'!()*")


class ScaffoldError(Exception):
    """Raised when a scaffolding step cannot be completed."""


def validate_package_name(
    name: object, max_length: int = MAX_PACKAGE_NAME_LENGTH
) -> List[str]:
    """Check ``name`` against the rules for new npm packages.

    Returns:
        Violated rules in evaluation order; empty when the name is valid
    """
    if name is None:
        return ["name cannot be null"]
    if not isinstance(name, str):
        return ["name must be a string"]
    if not name:
        return ["name length must be greater than zero"]

    errors: List[str] = []
    if name.startswith("."):
        errors.append("name cannot start with a period")
    if name.startswith("_"):
        errors.append("name cannot start with an underscore")
    if name.strip() != name:
        errors.append("name cannot contain leading or trailing spaces")
    if name.lower() in BLACKLISTED_NAMES:
        errors.append(f"{name} is a blacklisted name")
    if name.lower() in NODE_CORE_MODULES:
        errors.append(f"{name} is a core module name")
    if len(name) > max_length:
        errors.append(f"name can no longer contain more than {max_length} characters")
    if name.lower() != name:
        errors.append("name can no longer contain capital letters")
    if SPECIAL_CHARACTERS.intersection(name):
        errors.append("name can no longer contain special characters (\"~'!()*\")")
    if quote(name, safe="-_.!~*'()") != name:
        errors.append("name can only contain URL-friendly characters")
    return errors


def crate_name_for(project_name: str) -> str:
    """Return the native crate name used for ``project_name``."""

    return project_name.replace("-", "_")


class ProjectScaffolder:
    """Copy the template into a new directory and stamp the project identity."""

    EXCLUDED_NAMES = (".git", "node_modules", "dist")
    TEMPLATE_ONLY_FILES = ("create.js", "create-package.json")
    HOOKS_DIR = ".husky"
    MAX_NAME_LENGTH = 50

    def __init__(
        self,
        template_path: str,
        runner: Optional[CommandRunner] = None,
        *,
        version: str = "0.1.0",
        template_crate_name: str = "tauri-app",
    ):
        """Initialize the scaffolder.

        Args:
            template_path: Default template directory
            runner: Command runner used for git and pnpm
            version: Version stamped into newly created projects
            template_crate_name: Crate name used by the template's Cargo.toml
        """
        self.template_path = template_path
        self.runner = runner or CommandRunner()
        self.version = version
        self.template_crate_name = template_crate_name

    def create_project(  # pylint: disable=too-many-arguments
        self,
        name: str,
        target_path: Optional[str] = None,
        force: bool = False,
        template_path: Optional[str] = None,
        *,
        init_git: bool = True,
        install: bool = True,
    ) -> ToolResult:
        """Create a project called ``name``.

        With ``force`` an existing target directory is removed first; this
        cannot be undone. The three identity rewrites are not rolled back if
        a later one fails.
        """
        errors = validate_package_name(name, max_length=self.MAX_NAME_LENGTH)
        if errors:
            return ToolResult.fail(f"Invalid project name: {errors[0]}")

        project_dir = os.path.abspath(target_path or os.path.join(os.getcwd(), name))
        template_dir = os.path.abspath(template_path or self.template_path)
        logger.info("Creating Tauri project %s in %s", name, project_dir)

        try:
            self._prepare_target(project_dir, template_dir, force)
            self._copy_template(template_dir, project_dir)
            self._update_package_manifest(project_dir, name)
            self._update_app_config(project_dir, name)
            self._update_native_manifest(project_dir, name)
            self._remove_template_files(project_dir)
            if init_git:
                self.runner.run("git", ["init"], cwd=project_dir)
            if install:
                self.runner.run("pnpm", ["install"], cwd=project_dir)
        except CommandError as error:
            logger.error("Failed to create project %s: %s", name, error)
            return ToolResult.fail(error.detail)
        except (ScaffoldError, OSError, ValueError) as error:
            logger.error("Failed to create project %s: %s", name, error)
            return ToolResult.fail(str(error))

        logger.info("Project created successfully: %s", name)
        return ToolResult.ok(
            {
                "projectName": name,
                "projectPath": project_dir,
                "message": f"Tauri project '{name}' created successfully",
            }
        )

    def _prepare_target(self, project_dir: str, template_dir: str, force: bool) -> None:
        if not os.path.isdir(template_dir):
            raise ScaffoldError(f"Template directory not found: {template_dir}")

        if not os.path.lexists(project_dir):
            return
        if not force:
            raise ScaffoldError(
                f"Directory already exists: {project_dir}. "
                "Use force: true to overwrite."
            )

        logger.warning("Removing existing directory %s", project_dir)
        if os.path.isdir(project_dir) and not os.path.islink(project_dir):
            shutil.rmtree(project_dir)
        else:
            os.remove(project_dir)

    def _copy_template(self, template_dir: str, project_dir: str) -> None:
        shutil.copytree(
            template_dir,
            project_dir,
            symlinks=True,
            ignore=shutil.ignore_patterns(*self.EXCLUDED_NAMES),
        )

        hooks_dir = os.path.join(project_dir, self.HOOKS_DIR)
        if not os.path.isdir(hooks_dir):
            return
        for entry in os.listdir(hooks_dir):
            hook_path = os.path.join(hooks_dir, entry)
            if os.path.isfile(hook_path):
                mode = os.stat(hook_path).st_mode
                os.chmod(hook_path, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

    def _update_package_manifest(self, project_dir: str, name: str) -> None:
        path = os.path.join(project_dir, PACKAGE_MANIFEST)
        manifest = self._load_object(path)
        manifest["name"] = name
        manifest["version"] = self.version
        write_json(path, manifest)

    def _update_app_config(self, project_dir: str, name: str) -> None:
        path = os.path.join(project_dir, APP_CONFIG)
        config = self._load_object(path)
        lowered = name.lower()
        config["productName"] = name
        config["version"] = self.version
        config["identifier"] = f"com.{lowered}.{lowered}"

        windows = (config.get("app") or {}).get("windows")
        if not isinstance(windows, list) or not windows or not isinstance(windows[0], dict):
            raise ScaffoldError(f"No app.windows entry to retitle in {path}")
        windows[0]["title"] = name
        write_json(path, config)

    def _update_native_manifest(self, project_dir: str, name: str) -> None:
        path = os.path.join(project_dir, NATIVE_MANIFEST)
        if not os.path.isfile(path):
            raise ScaffoldError(f"Native manifest not found: {path}")

        with open(path, "r", encoding="utf-8") as handle:
            content = handle.read()

        pattern = re.compile(r'name = "' + re.escape(self.template_crate_name) + '"')
        updated, count = pattern.subn(f'name = "{crate_name_for(name)}"', content, count=1)
        if count == 0:
            logger.warning(
                "Crate name %s not found in %s", self.template_crate_name, path
            )

        with open(path, "w", encoding="utf-8") as handle:
            handle.write(updated)

    def _remove_template_files(self, project_dir: str) -> None:
        for filename in self.TEMPLATE_ONLY_FILES:
            file_path = os.path.join(project_dir, filename)
            if os.path.isfile(file_path):
                os.remove(file_path)

    @staticmethod
    def _load_object(path: str) -> dict:
        if not os.path.isfile(path):
            raise ScaffoldError(f"File not found: {path}")
        payload = read_json(path)
        if not isinstance(payload, dict):
            raise ScaffoldError(f"Expected a JSON object in {path}")
        return payload
