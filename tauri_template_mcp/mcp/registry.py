"""In-memory catalogs of tool and resource descriptors."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolDescriptor:
    """Name, description and JSON input schema of a tool."""

    name: str
    description: str
    input_schema: Dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}, "required": []}
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


@dataclass(frozen=True)
class ResourceDescriptor:
    """Name, description, URI and media type of a resource."""

    name: str
    description: str
    uri: str
    mime_type: str = "application/json"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "uri": self.uri,
            "mimeType": self.mime_type,
        }


DescriptorT = TypeVar("DescriptorT", ToolDescriptor, ResourceDescriptor)


class Registry(Generic[DescriptorT]):
    """Descriptors keyed by name; registering an existing name replaces it."""

    def __init__(self, label: str) -> None:
        self.label = label
        self._entries: Dict[str, DescriptorT] = {}

    def register(self, descriptor: DescriptorT) -> None:
        replaced = descriptor.name in self._entries
        self._entries[descriptor.name] = descriptor
        if replaced:
            logger.info("%s re-registered: %s", self.label, descriptor.name)
        else:
            logger.info("%s registered: %s", self.label, descriptor.name)

    def resolve(self, name: str) -> Optional[DescriptorT]:
        """Return the descriptor registered under ``name``, if any."""
        return self._entries.get(name)

    def list(self) -> List[DescriptorT]:
        """Return all descriptors in registration order."""
        return list(self._entries.values())

    def names(self) -> List[str]:
        return list(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class ToolRegistry(Registry[ToolDescriptor]):
    def __init__(self) -> None:
        super().__init__("Tool")


class ResourceRegistry(Registry[ResourceDescriptor]):
    def __init__(self) -> None:
        super().__init__("Resource")
