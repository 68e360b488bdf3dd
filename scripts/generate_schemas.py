"""Generate JSON schemas from Pydantic models and save to schemas/ directory."""

import json
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from lazymerge.kernel.options import CodecOptions
from lazymerge.kernel.schema import SchemaRegistry


def generate_schemas():
    """Generate JSON schemas for all models."""
    schemas_dir = Path(__file__).parent.parent / "schemas"
    schemas_dir.mkdir(exist_ok=True)

    # Generate schema registry schema (the format load_registry accepts)
    registry_schema = SchemaRegistry.model_json_schema()
    registry_schema_path = schemas_dir / "schema_registry.schema.json"
    with open(registry_schema_path, 'w', encoding='utf-8') as f:
        json.dump(registry_schema, f, indent=2, ensure_ascii=False)
    print(f"Generated: {registry_schema_path}")

    # Generate codec options schema
    options_schema = CodecOptions.model_json_schema()
    options_schema_path = schemas_dir / "codec_options.schema.json"
    with open(options_schema_path, 'w', encoding='utf-8') as f:
        json.dump(options_schema, f, indent=2, ensure_ascii=False)
    print(f"Generated: {options_schema_path}")

    print("\nSchema generation complete!")


if __name__ == "__main__":
    generate_schemas()
