"""Live probing of the JavaScript and Rust toolchain versions."""

import asyncio
import logging
import platform
import re
import sys
from typing import Any, Dict, List, Mapping, Optional, Tuple

from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import InvalidVersion, Version

from .commands import CommandError, CommandRunner

logger = logging.getLogger(__name__)

VERSION_PATTERN = re.compile(r"(\d+)\.(\d+)(?:\.(\d+))?")

# requirement key -> (info field, program, args)
PROBES = {
    "node": ("nodeVersion", "node", ["--version"]),
    "pnpm": ("pnpmVersion", "pnpm", ["--version"]),
    "rust": ("rustVersion", "rustc", ["--version"]),
}

ARCH_ALIASES = {
    "x86_64": "x64",
    "amd64": "x64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "ia32",
    "i686": "ia32",
}

DEFAULT_REQUIREMENTS = {
    "node": ">=18.0.0",
    "pnpm": ">=8.0.0",
    "rust": ">=1.70.0",
}


def extract_version(text: Optional[str]) -> Optional[Version]:
    """Pull the first ``major.minor[.patch]`` triple out of ``text``."""

    if not text:
        return None
    match = VERSION_PATTERN.search(text)
    if not match:
        return None
    major, minor, patch = match.groups()
    try:
        return Version(f"{major}.{minor}.{patch or 0}")
    except InvalidVersion:
        return None


class EnvironmentProbe:
    """Report installed toolchain versions and compare them with minimums."""

    def __init__(
        self,
        runner: Optional[CommandRunner] = None,
        requirements: Optional[Mapping[str, str]] = None,
        tauri_version: str = "2.0.0",
    ):
        self.runner = runner or CommandRunner()
        self.requirements = dict(requirements or DEFAULT_REQUIREMENTS)
        self.tauri_version = tauri_version

    async def collect(self) -> Dict[str, Any]:
        """Probe every tool concurrently; a missing tool reports ``None``."""

        keys = list(PROBES)
        versions = await asyncio.gather(*(self._probe(key) for key in keys))

        info: Dict[str, Any] = {}
        for key, version in zip(keys, versions):
            info[PROBES[key][0]] = version
        info["tauriVersion"] = self.tauri_version
        info["platform"] = sys.platform
        machine = platform.machine().lower()
        info["arch"] = ARCH_ALIASES.get(machine, machine)
        return info

    async def _probe(self, key: str) -> Optional[str]:
        _, program, args = PROBES[key]
        try:
            output = await self.runner.run_async(program, args)
        except CommandError as error:
            logger.warning("Could not determine %s version: %s", key, error)
            return None
        return output.strip() or None

    def check(
        self, info: Mapping[str, Any]
    ) -> Tuple[Dict[str, Dict[str, Any]], List[str]]:
        """Compare probed versions against the configured requirements.

        Returns:
            Tuple of (requirements table, list of human-readable issues)
        """
        table: Dict[str, Dict[str, Any]] = {}
        issues: List[str] = []

        for key, required in self.requirements.items():
            field_name = PROBES.get(key, (f"{key}Version",))[0]
            current = info.get(field_name)
            table[key] = {"required": required, "current": current}

            if current is None:
                issues.append(f"{key}: not found (requires {required})")
                continue

            try:
                specifier = SpecifierSet(required)
            except InvalidSpecifier:
                logger.warning("Ignoring invalid requirement %s for %s", required, key)
                continue

            version = extract_version(current)
            if version is None:
                issues.append(f"{key}: could not parse version from {current!r}")
            elif not specifier.contains(version, prereleases=True):
                issues.append(
                    f"{key}: version {current} is below required {required}"
                )

        table["tauri"] = {
            "required": self.tauri_version,
            "current": info.get("tauriVersion"),
        }
        return table, issues
