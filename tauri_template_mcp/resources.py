"""Read-only snapshots of project, template and environment state."""

from __future__ import annotations

import asyncio
import logging
import os
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional

from .environment import EnvironmentProbe
from .project import (
    APP_CONFIG,
    NATIVE_DIR,
    NATIVE_MANIFEST,
    PACKAGE_MANIFEST,
    read_json,
    utc_timestamp,
    validate_project_path,
)

logger = logging.getLogger(__name__)

PRUNED_DIRECTORIES = {"node_modules", "dist", "target"}
TRUNCATED = "[truncated]"
CARGO_DEPENDENCY_LINE = re.compile(r'^(\w+(?:-\w+)*)\s*=\s*"([^"]+)"')

# Checked in order; the first bucket whose keyword occurs in the script name wins.
SCRIPT_BUCKETS = (
    ("development", ("dev", "start")),
    ("build", ("build",)),
    ("test", ("test",)),
    ("lint", ("lint", "format")),
)


class ResourceKind(str, Enum):
    """Built-in resources, keyed by their wire name."""

    TAURI_CONFIG = "tauri-config"
    PROJECT_STRUCTURE = "project-structure"
    BUILD_STATUS = "build-status"
    ENVIRONMENT_INFO = "environment-info"
    TEMPLATE_INFO = "template-info"
    SCRIPTS_INFO = "scripts-info"
    DEPENDENCIES_INFO = "dependencies-info"


class ResourceError(Exception):
    """Raised when a resource cannot be computed."""


def _isoformat(epoch: float) -> str:
    return datetime.fromtimestamp(epoch, tz=timezone.utc).isoformat()


@dataclass
class BuildStatus:
    """Last known state of a build triggered through the build tool."""

    status: str = "idle"
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    output: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"status": self.status}
        for key, value in (
            ("startTime", self.start_time),
            ("endTime", self.end_time),
            ("output", self.output),
            ("error", self.error),
        ):
            if value is not None:
                payload[key] = value
        return payload


class BuildTracker:
    """Best-effort holder for the most recent build status.

    Readers get a snapshot; nothing synchronizes a read with a build that is
    still running.
    """

    STATUSES = ("idle", "building", "success", "failed")

    def __init__(self) -> None:
        self._status = BuildStatus()

    @property
    def status(self) -> BuildStatus:
        return self._status

    def update(self, status: BuildStatus) -> None:
        if status.status not in self.STATUSES:
            raise ValueError(f"Unknown build status: {status.status}")
        self._status = status
        logger.info("Build status updated: %s", status.status)

    def mark_building(self) -> None:
        self.update(BuildStatus(status="building", start_time=utc_timestamp()))

    def mark_finished(
        self, success: bool, output: Optional[str] = None, error: Optional[str] = None
    ) -> None:
        self.update(
            BuildStatus(
                status="success" if success else "failed",
                start_time=self._status.start_time,
                end_time=utc_timestamp(),
                output=output,
                error=error,
            )
        )


class ResourceProvider:
    """Compute resource content fresh from disk on every read."""

    def __init__(
        self,
        root_path: str,
        template_path: Optional[str] = None,
        *,
        probe: Optional[EnvironmentProbe] = None,
        build_tracker: Optional[BuildTracker] = None,
        max_depth: int = 3,
    ):
        """Initialize the provider.

        Args:
            root_path: Default project directory for project-scoped resources
            template_path: Template directory (defaults to ``root_path/template``)
            probe: Environment probe used by ``environment-info``
            build_tracker: Shared build status holder
            max_depth: Directory levels expanded by structure listings
        """
        self.root_path = root_path
        self.template_path = template_path or os.path.join(root_path, "template")
        self.probe = probe or EnvironmentProbe()
        self.build_tracker = build_tracker or BuildTracker()
        self.max_depth = max_depth

    async def read(self, kind: ResourceKind, project_path: Optional[str] = None) -> Any:
        """Return the content of resource ``kind``."""

        if kind is ResourceKind.ENVIRONMENT_INFO:
            return await self.environment_info()
        if kind is ResourceKind.TEMPLATE_INFO:
            return await asyncio.to_thread(self.template_info)

        readers: Dict[ResourceKind, Callable[[Optional[str]], Any]] = {
            ResourceKind.TAURI_CONFIG: self.tauri_config,
            ResourceKind.PROJECT_STRUCTURE: self.project_structure,
            ResourceKind.BUILD_STATUS: self.build_status,
            ResourceKind.SCRIPTS_INFO: self.scripts_info,
            ResourceKind.DEPENDENCIES_INFO: self.dependencies_info,
        }
        return await asyncio.to_thread(readers[kind], project_path)

    def _project_path(self, project_path: Optional[str]) -> str:
        target = project_path or self.root_path
        if not validate_project_path(target):
            raise ResourceError(f"Invalid Tauri project path: {target}")
        return target

    def tauri_config(self, project_path: Optional[str] = None) -> Dict[str, Any]:
        target = self._project_path(project_path)
        return {
            "package": read_json(os.path.join(target, PACKAGE_MANIFEST)),
            "tauri": read_json(os.path.join(target, APP_CONFIG)),
            "projectPath": target,
            "timestamp": utc_timestamp(),
        }

    def project_structure(self, project_path: Optional[str] = None) -> Dict[str, Any]:
        target = self._project_path(project_path)
        return {
            "structure": self.build_directory_structure(target, self.max_depth),
            "projectPath": target,
            "timestamp": utc_timestamp(),
        }

    def build_status(self, project_path: Optional[str] = None) -> Dict[str, Any]:
        """Combine the tracked build status with what is on disk right now."""

        target = self._project_path(project_path)
        release_dir = os.path.join(target, NATIVE_DIR, "target", "release")
        dist_dir = os.path.join(target, "dist")
        has_release = os.path.isdir(release_dir)

        build_info: Dict[str, Any] = {}
        if has_release:
            try:
                build_info = {
                    "distFiles": sorted(os.listdir(release_dir)),
                    "buildTime": _isoformat(os.stat(release_dir).st_mtime),
                }
            except OSError as error:
                logger.warning("Could not list %s: %s", release_dir, error)

        payload = self.build_tracker.status.to_dict()
        payload.update(
            {
                "hasBuildOutput": has_release or os.path.isdir(dist_dir),
                "buildInfo": build_info,
                "timestamp": utc_timestamp(),
            }
        )
        return payload

    async def environment_info(self) -> Dict[str, Any]:
        info = await self.probe.collect()
        info["timestamp"] = utc_timestamp()
        return info

    def template_info(self) -> Dict[str, Any]:
        template_path = self.template_path
        if not os.path.isdir(template_path):
            raise ResourceError(f"Template directory not found: {template_path}")

        manifest = read_json(os.path.join(template_path, PACKAGE_MANIFEST))
        return {
            "template": {
                "name": manifest.get("name"),
                "version": manifest.get("version"),
                "description": manifest.get("description"),
                "dependencies": manifest.get("dependencies"),
                "devDependencies": manifest.get("devDependencies"),
                "scripts": manifest.get("scripts"),
            },
            "structure": self.build_directory_structure(template_path, self.max_depth),
            "templatePath": template_path,
            "timestamp": utc_timestamp(),
        }

    def scripts_info(self, project_path: Optional[str] = None) -> Dict[str, Any]:
        target = self._project_path(project_path)
        manifest = read_json(os.path.join(target, PACKAGE_MANIFEST))
        return {
            "scripts": categorize_scripts(manifest.get("scripts") or {}),
            "projectPath": target,
            "timestamp": utc_timestamp(),
        }

    def dependencies_info(self, project_path: Optional[str] = None) -> Dict[str, Any]:
        target = self._project_path(project_path)
        manifest = read_json(os.path.join(target, PACKAGE_MANIFEST))

        cargo: Dict[str, str] = {}
        cargo_path = os.path.join(target, NATIVE_MANIFEST)
        if os.path.isfile(cargo_path):
            with open(cargo_path, "r", encoding="utf-8") as handle:
                cargo = parse_cargo_dependencies(handle.read())

        return {
            "npm": {
                "dependencies": manifest.get("dependencies") or {},
                "devDependencies": manifest.get("devDependencies") or {},
            },
            "cargo": cargo,
            "projectPath": target,
            "timestamp": utc_timestamp(),
        }

    def build_directory_structure(self, dir_path: str, max_depth: int) -> Dict[str, Any]:
        """Describe ``dir_path`` as a nested mapping.

        Directories found once ``max_depth`` is exhausted are reported with
        ``children`` set to ``"[truncated]"`` instead of being expanded.
        """
        result: Dict[str, Any] = {}
        for entry in sorted(os.listdir(dir_path)):
            if entry.startswith(".") or entry in PRUNED_DIRECTORIES:
                continue

            entry_path = os.path.join(dir_path, entry)
            try:
                info = os.stat(entry_path)
            except OSError as error:
                logger.debug("Skipping %s: %s", entry_path, error)
                continue

            if os.path.isdir(entry_path):
                if max_depth > 0:
                    children: Any = self.build_directory_structure(
                        entry_path, max_depth - 1
                    )
                else:
                    children = TRUNCATED
                result[entry] = {"type": "directory", "children": children}
            else:
                result[entry] = {
                    "type": "file",
                    "size": info.st_size,
                    "modified": _isoformat(info.st_mtime),
                }
        return result


def categorize_scripts(scripts: Dict[str, str]) -> Dict[str, Dict[str, str]]:
    """Bucket package scripts by name into development/build/test/lint/other."""

    categorized: Dict[str, Dict[str, str]] = {
        bucket: {} for bucket, _ in SCRIPT_BUCKETS
    }
    categorized["other"] = {}

    for name, command in scripts.items():
        for bucket, keywords in SCRIPT_BUCKETS:
            if any(keyword in name for keyword in keywords):
                categorized[bucket][name] = command
                break
        else:
            categorized["other"][name] = command
    return categorized


def parse_cargo_dependencies(content: str) -> Dict[str, str]:
    """Extract flat ``name = "version"`` entries from ``[dependencies]``.

    Not a TOML parser: inline tables, arrays and sub-tables are skipped.
    """
    dependencies: Dict[str, str] = {}
    in_dependencies = False

    for line in content.splitlines():
        stripped = line.strip()
        if stripped == "[dependencies]":
            in_dependencies = True
            continue
        if stripped.startswith("["):
            in_dependencies = False
            continue
        if not in_dependencies or not stripped or stripped.startswith("#"):
            continue

        match = CARGO_DEPENDENCY_LINE.match(stripped)
        if match:
            dependencies[match.group(1)] = match.group(2)
    return dependencies
