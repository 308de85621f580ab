"""Project layout helpers: marker files, JSON config IO and project metadata."""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict

logger = logging.getLogger(__name__)

PACKAGE_MANIFEST = "package.json"
NATIVE_DIR = "src-tauri"
APP_CONFIG = os.path.join(NATIVE_DIR, "tauri.conf.json")
NATIVE_MANIFEST = os.path.join(NATIVE_DIR, "Cargo.toml")

# Both must exist for a directory to count as a project root.
MARKER_FILES = (PACKAGE_MANIFEST, APP_CONFIG)


def utc_timestamp() -> str:
    """Return the current UTC time as an ISO-8601 string."""

    return datetime.now(timezone.utc).isoformat()


def validate_project_path(project_path: str) -> bool:
    """Return True if ``project_path`` holds both project marker files."""

    if not project_path:
        return False
    for marker in MARKER_FILES:
        if not os.path.isfile(os.path.join(project_path, marker)):
            logger.debug("Marker %s missing under %s", marker, project_path)
            return False
    return True


def read_json(path: str) -> Any:
    """Load a JSON document from ``path``."""

    with open(path, "r", encoding="utf-8") as handle:
        return json.load(handle)


def write_json(path: str, payload: Any) -> None:
    """Write ``payload`` as JSON with two-space indentation."""

    with open(path, "w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2, ensure_ascii=False)
        handle.write("\n")


def get_project_config(project_path: str) -> Dict[str, Any]:
    """Summarize the package manifest of a project.

    The app config is loaded as well so that a corrupt ``tauri.conf.json``
    surfaces as an error here rather than later in a build.
    """

    package_json = read_json(os.path.join(project_path, PACKAGE_MANIFEST))
    read_json(os.path.join(project_path, APP_CONFIG))

    return {
        "name": package_json.get("name"),
        "path": project_path,
        "version": package_json.get("version"),
        "dependencies": package_json.get("dependencies") or {},
        "devDependencies": package_json.get("devDependencies") or {},
        "scripts": package_json.get("scripts") or {},
    }
