"""Tools that scaffold, build, lint and inspect Tauri projects."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Type

from jsonschema import Draft202012Validator

from .commands import CommandError, CommandRunner
from .environment import EnvironmentProbe
from .project import get_project_config, validate_project_path
from .resources import BuildTracker
from .results import ToolResult
from .scaffold import ProjectScaffolder

logger = logging.getLogger(__name__)


class ToolKind(str, Enum):
    """Built-in tools, keyed by their wire name."""

    CREATE_PROJECT = "create-tauri-project"
    RUN_DEV = "run-tauri-dev"
    BUILD_PROJECT = "build-tauri-project"
    GET_PROJECT_INFO = "get-project-info"
    CHECK_ENVIRONMENT = "check-environment"
    INSTALL_DEPENDENCIES = "install-dependencies"
    RUN_LINTING = "run-linting"


def _arg(name: str, default: Any = None) -> Any:
    """Declare a params field bound to the wire argument ``name``."""

    return field(default=default, metadata={"arg": name})


@dataclass(frozen=True)
class CreateProjectParams:
    project_name: str = _arg("projectName")
    target_path: Optional[str] = _arg("targetPath")
    force: bool = _arg("force", False)
    template_path: Optional[str] = _arg("templatePath")
    init_git: bool = _arg("initGit", True)
    install: bool = _arg("install", True)


@dataclass(frozen=True)
class RunDevParams:
    project_path: str = _arg("projectPath")
    port: Optional[int] = _arg("port")


@dataclass(frozen=True)
class BuildProjectParams:
    project_path: str = _arg("projectPath")
    target: str = _arg("target", "all")


@dataclass(frozen=True)
class ProjectParams:
    project_path: str = _arg("projectPath")


@dataclass(frozen=True)
class NoParams:
    pass


@dataclass(frozen=True)
class InstallDependenciesParams:
    project_path: str = _arg("projectPath")
    dependencies: Optional[List[str]] = _arg("dependencies")
    dev_dependencies: Optional[List[str]] = _arg("devDependencies")


@dataclass(frozen=True)
class RunLintingParams:
    project_path: str = _arg("projectPath")
    fix: bool = _arg("fix", False)


def validate_arguments(arguments: Any, schema: Mapping[str, Any]) -> List[str]:
    """Validate ``arguments`` against a JSON schema and format the violations."""

    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(arguments), key=lambda e: str(e.path))
    formatted: List[str] = []
    for error in errors:
        path = "$"
        for part in error.path:
            path += f"[{part!r}]" if isinstance(part, int) else f".{part}"
        formatted.append(f"{path}: {error.message}")
    return formatted


class Tool:
    """Base class for all tools."""

    kind: ToolKind
    params_type: Type[Any] = NoParams

    def __init__(self, runner: Optional[CommandRunner] = None):
        """Initialize a tool.

        Args:
            runner: Command runner used for external programs
        """
        self.runner = runner or CommandRunner()

    @property
    def name(self) -> str:
        return self.kind.value

    def parse_params(self, arguments: Mapping[str, Any]) -> Any:
        """Build the typed params object from validated wire arguments."""

        values = {}
        for item in dataclasses.fields(self.params_type):
            wire_name = item.metadata.get("arg", item.name)
            if arguments.get(wire_name) is not None:
                values[item.name] = arguments[wire_name]
        return self.params_type(**values)

    async def invoke(
        self, arguments: Mapping[str, Any], schema: Mapping[str, Any]
    ) -> ToolResult:
        """Validate ``arguments`` against ``schema`` and run the tool.

        Validation problems, external command failures and filesystem errors
        are reported as a failed ToolResult. Anything else propagates.
        """
        errors = validate_arguments(dict(arguments), schema)
        if errors:
            logger.warning("Rejected %s arguments: %s", self.name, errors)
            return ToolResult.fail(f"Invalid parameters: {'; '.join(errors)}")

        try:
            return await self.run(self.parse_params(arguments))
        except CommandError as error:
            logger.error("Tool %s failed: %s", self.name, error)
            return ToolResult.fail(error.detail)
        except (OSError, ValueError) as error:
            logger.error("Tool %s failed: %s", self.name, error)
            return ToolResult.fail(str(error))

    async def run(self, params: Any) -> ToolResult:
        """Run the tool.

        Args:
            params: Typed parameters

        Returns:
            Tool result
        """
        raise NotImplementedError("Subclasses must implement this method")


class ProjectTool(Tool):
    """Tool that operates on an existing project directory."""

    @staticmethod
    def invalid_project(project_path: str) -> Optional[ToolResult]:
        if validate_project_path(project_path):
            return None
        return ToolResult.fail(f"Invalid Tauri project path: {project_path}")


class CreateProject(Tool):
    """Create a new project from the template."""

    kind = ToolKind.CREATE_PROJECT
    params_type = CreateProjectParams

    def __init__(self, scaffolder: ProjectScaffolder):
        super().__init__(scaffolder.runner)
        self.scaffolder = scaffolder

    async def run(self, params: CreateProjectParams) -> ToolResult:
        return await asyncio.to_thread(
            self.scaffolder.create_project,
            params.project_name,
            params.target_path,
            params.force,
            params.template_path,
            init_git=params.init_git,
            install=params.install,
        )


class RunDev(ProjectTool):
    """Start the Tauri development server."""

    kind = ToolKind.RUN_DEV
    params_type = RunDevParams

    async def run(self, params: RunDevParams) -> ToolResult:
        invalid = self.invalid_project(params.project_path)
        if invalid:
            return invalid

        logger.info("Starting development server for %s", params.project_path)
        args = ["tauri", "dev"]
        if params.port:
            args.extend(["--port", str(params.port)])

        output = await self.runner.run_async("pnpm", args, cwd=params.project_path)
        return ToolResult.ok(
            {"output": output, "message": "Development server started successfully"}
        )


class BuildProject(ProjectTool):
    """Build the project and record the outcome for the build-status resource."""

    kind = ToolKind.BUILD_PROJECT
    params_type = BuildProjectParams

    def __init__(
        self,
        runner: Optional[CommandRunner] = None,
        build_tracker: Optional[BuildTracker] = None,
    ):
        super().__init__(runner)
        self.build_tracker = build_tracker or BuildTracker()

    async def run(self, params: BuildProjectParams) -> ToolResult:
        invalid = self.invalid_project(params.project_path)
        if invalid:
            return invalid

        logger.info("Building Tauri project %s", params.project_path)
        args = ["tauri", "build"]
        if params.target != "all":
            args.extend(["--target", params.target])

        self.build_tracker.mark_building()
        try:
            output = await self.runner.run_async("pnpm", args, cwd=params.project_path)
        except CommandError as error:
            self.build_tracker.mark_finished(False, error=error.detail)
            raise

        self.build_tracker.mark_finished(True, output=output)
        return ToolResult.ok(
            {
                "output": output,
                "target": params.target,
                "message": "Project built successfully",
            }
        )


class GetProjectInfo(ProjectTool):
    """Summarize a project's manifest."""

    kind = ToolKind.GET_PROJECT_INFO
    params_type = ProjectParams

    async def run(self, params: ProjectParams) -> ToolResult:
        invalid = self.invalid_project(params.project_path)
        if invalid:
            return invalid

        config = await asyncio.to_thread(get_project_config, params.project_path)
        return ToolResult.ok(
            {"config": config, "message": "Project information retrieved successfully"}
        )


class CheckEnvironment(Tool):
    """Check installed toolchain versions against their minimums."""

    kind = ToolKind.CHECK_ENVIRONMENT

    def __init__(self, probe: EnvironmentProbe):
        super().__init__(probe.runner)
        self.probe = probe

    async def run(self, params: NoParams) -> ToolResult:
        logger.info("Checking development environment")
        environment = await self.probe.collect()
        requirements, issues = self.probe.check(environment)
        passed = not issues
        return ToolResult(
            success=passed,
            data={
                "environment": environment,
                "requirements": requirements,
                "issues": issues,
                "message": "Environment check passed"
                if passed
                else "Environment has issues",
            },
            error=None if passed else "; ".join(issues),
        )


class InstallDependencies(ProjectTool):
    """Add packages, or install everything the manifest declares."""

    kind = ToolKind.INSTALL_DEPENDENCIES
    params_type = InstallDependenciesParams

    async def run(self, params: InstallDependenciesParams) -> ToolResult:
        invalid = self.invalid_project(params.project_path)
        if invalid:
            return invalid

        logger.info("Installing dependencies for %s", params.project_path)
        cwd = params.project_path
        results: List[str] = []

        if params.dependencies:
            await self.runner.run_async("pnpm", ["add", *params.dependencies], cwd=cwd)
            results.append(f"Dependencies installed: {', '.join(params.dependencies)}")

        if params.dev_dependencies:
            await self.runner.run_async(
                "pnpm", ["add", "-D", *params.dev_dependencies], cwd=cwd
            )
            results.append(
                f"Dev dependencies installed: {', '.join(params.dev_dependencies)}"
            )

        # Explicit empty lists mean "add nothing", not "install everything".
        if params.dependencies is None and params.dev_dependencies is None:
            await self.runner.run_async("pnpm", ["install"], cwd=cwd)
            results.append("All dependencies installed")

        return ToolResult.ok(
            {"results": results, "message": "Dependencies installed successfully"}
        )


class RunLinting(ProjectTool):
    """Run the project's lint script."""

    kind = ToolKind.RUN_LINTING
    params_type = RunLintingParams

    async def run(self, params: RunLintingParams) -> ToolResult:
        invalid = self.invalid_project(params.project_path)
        if invalid:
            return invalid

        logger.info("Running linting for %s", params.project_path)
        args = ["lint"]
        if params.fix:
            args.append("--fix")

        output = await self.runner.run_async("pnpm", args, cwd=params.project_path)
        suffix = " with auto-fix" if params.fix else ""
        return ToolResult.ok(
            {
                "output": output,
                "fix": params.fix,
                "message": f"Linting completed{suffix}",
            }
        )


def build_tools(
    scaffolder: ProjectScaffolder,
    probe: EnvironmentProbe,
    build_tracker: BuildTracker,
    runner: Optional[CommandRunner] = None,
) -> Dict[ToolKind, Tool]:
    """Instantiate one implementation per ToolKind."""

    runner = runner or scaffolder.runner
    tools: List[Tool] = [
        CreateProject(scaffolder),
        RunDev(runner),
        BuildProject(runner, build_tracker),
        GetProjectInfo(runner),
        CheckEnvironment(probe),
        InstallDependencies(runner),
        RunLinting(runner),
    ]
    return {tool.kind: tool for tool in tools}
