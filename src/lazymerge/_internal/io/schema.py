"""Schema I/O helpers (internal)."""

from pathlib import Path
from typing import Union

from lazymerge.kernel.schema import SchemaRegistry


def load_registry_from_path(path: Union[str, Path]) -> SchemaRegistry:
    """Load a schema registry from a JSON file path."""
    registry_path = Path(path)
    data = registry_path.read_bytes()
    return SchemaRegistry.from_json_bytes(data)
