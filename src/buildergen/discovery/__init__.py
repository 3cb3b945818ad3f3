"""Discovery of buildable classes in Python source."""

from buildergen.discovery.python_discovery import (
    DiscoveredTarget,
    DiscoveryResult,
    ProjectIndex,
    discover_module,
    discover_path,
    discover_source,
    iter_python_paths,
    parse_source,
    read_module,
)

__all__ = [
    "DiscoveredTarget",
    "DiscoveryResult",
    "ProjectIndex",
    "discover_module",
    "discover_path",
    "discover_source",
    "iter_python_paths",
    "parse_source",
    "read_module",
]
