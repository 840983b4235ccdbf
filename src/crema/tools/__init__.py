"""Voice-command tools, grouped by behavior."""

from crema.tools.catalog import CATALOG_TOOLS
from crema.tools.navigation import NAVIGATION_TOOLS
from crema.tools.queries import QUERY_TOOLS
from crema.tools.registry import (
    ToolContext,
    ToolDefinition,
    ToolKind,
    ToolParameter,
    ToolRegistry,
)
from crema.tools.shots import SHOT_TOOLS

ALL_TOOLS = SHOT_TOOLS + CATALOG_TOOLS + NAVIGATION_TOOLS + QUERY_TOOLS


def build_registry() -> ToolRegistry:
    return ToolRegistry(ALL_TOOLS)


__all__ = [
    "ALL_TOOLS",
    "ToolContext",
    "ToolDefinition",
    "ToolKind",
    "ToolParameter",
    "ToolRegistry",
    "build_registry",
]
