"""Built-in tool and resource descriptors registered by every server."""

from typing import List

from ..resources import ResourceKind
from ..tools import ToolKind
from .registry import ResourceDescriptor, ToolDescriptor


def _project_path_property():
    return {"type": "string", "minLength": 1, "description": "Path to project"}


def builtin_tools() -> List[ToolDescriptor]:
    """Return fresh descriptors for the built-in tools."""

    return [
        ToolDescriptor(
            name=ToolKind.CREATE_PROJECT.value,
            description="Create a new Tauri project from template",
            input_schema={
                "type": "object",
                "properties": {
                    "projectName": {
                        "type": "string",
                        "minLength": 1,
                        "maxLength": 50,
                        "description": "Name of the project",
                    },
                    "targetPath": {
                        "type": "string",
                        "description": "Target path (optional)",
                    },
                    "force": {"type": "boolean", "description": "Overwrite if exists"},
                    "templatePath": {
                        "type": "string",
                        "description": "Template path (optional)",
                    },
                    "initGit": {
                        "type": "boolean",
                        "description": "Initialize a git repository (default true)",
                    },
                    "install": {
                        "type": "boolean",
                        "description": "Install dependencies (default true)",
                    },
                },
                "required": ["projectName"],
            },
        ),
        ToolDescriptor(
            name=ToolKind.RUN_DEV.value,
            description="Start Tauri development server",
            input_schema={
                "type": "object",
                "properties": {
                    "projectPath": _project_path_property(),
                    "port": {
                        "type": "integer",
                        "minimum": 1024,
                        "maximum": 65535,
                        "description": "Port number (optional)",
                    },
                },
                "required": ["projectPath"],
            },
        ),
        ToolDescriptor(
            name=ToolKind.BUILD_PROJECT.value,
            description="Build Tauri project",
            input_schema={
                "type": "object",
                "properties": {
                    "projectPath": _project_path_property(),
                    "target": {
                        "type": "string",
                        "enum": ["all", "appimage", "msi", "dmg"],
                        "description": "Build target",
                    },
                },
                "required": ["projectPath"],
            },
        ),
        ToolDescriptor(
            name=ToolKind.GET_PROJECT_INFO.value,
            description="Get Tauri project information",
            input_schema={
                "type": "object",
                "properties": {"projectPath": _project_path_property()},
                "required": ["projectPath"],
            },
        ),
        ToolDescriptor(
            name=ToolKind.CHECK_ENVIRONMENT.value,
            description="Check development environment",
            input_schema={"type": "object", "properties": {}, "required": []},
        ),
        ToolDescriptor(
            name=ToolKind.INSTALL_DEPENDENCIES.value,
            description="Install project dependencies",
            input_schema={
                "type": "object",
                "properties": {
                    "projectPath": _project_path_property(),
                    "dependencies": {"type": "array", "items": {"type": "string"}},
                    "devDependencies": {"type": "array", "items": {"type": "string"}},
                },
                "required": ["projectPath"],
            },
        ),
        ToolDescriptor(
            name=ToolKind.RUN_LINTING.value,
            description="Run code linting",
            input_schema={
                "type": "object",
                "properties": {
                    "projectPath": _project_path_property(),
                    "fix": {"type": "boolean", "description": "Auto-fix issues"},
                },
                "required": ["projectPath"],
            },
        ),
    ]


def builtin_resources() -> List[ResourceDescriptor]:
    """Return fresh descriptors for the built-in resources."""

    descriptions = {
        ResourceKind.TAURI_CONFIG: "Tauri configuration information",
        ResourceKind.PROJECT_STRUCTURE: "Project directory structure",
        ResourceKind.BUILD_STATUS: "Build status and information",
        ResourceKind.ENVIRONMENT_INFO: "Development environment information",
        ResourceKind.TEMPLATE_INFO: "Template information and structure",
        ResourceKind.SCRIPTS_INFO: "Available npm scripts",
        ResourceKind.DEPENDENCIES_INFO: "Project dependencies information",
    }
    uris = {ResourceKind.TAURI_CONFIG: "tauri://config"}

    return [
        ResourceDescriptor(
            name=kind.value,
            description=description,
            uri=uris.get(kind, f"tauri://{kind.value}"),
        )
        for kind, description in descriptions.items()
    ]
