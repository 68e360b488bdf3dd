"""Hash utilities with explicit canonicalization rules for schema fingerprints.

Key rules:
- Object keys sorted recursively
- Arrays preserve order (callers sort anything that is set-like)
- Floats BANNED (hard validation error)
- Strings normalized to NFC
- Non-JSON types forbidden
"""

import hashlib
import json
import unicodedata
from typing import Any


class CanonicalizationError(ValueError):
    """Raised when an object cannot be canonicalized."""
    pass


def _canonicalize_value(obj: Any, path: str = "") -> Any:
    if obj is None or isinstance(obj, bool):
        return obj
    elif isinstance(obj, int):
        return obj
    elif isinstance(obj, float):
        raise CanonicalizationError(f"Floats are not allowed (at {path or '<root>'})")
    elif isinstance(obj, str):
        return unicodedata.normalize("NFC", obj)
    elif isinstance(obj, dict):
        result = {}
        for key, value in obj.items():
            if not isinstance(key, str):
                raise CanonicalizationError(
                    f"Dictionary keys must be strings at {path or '<root>'}, got {type(key).__name__}"
                )
            result[unicodedata.normalize("NFC", key)] = _canonicalize_value(
                value, f"{path}.{key}" if path else key
            )
        return result
    elif isinstance(obj, (list, tuple)):
        return [_canonicalize_value(item, f"{path}[{i}]") for i, item in enumerate(obj)]
    raise CanonicalizationError(
        f"Non-JSON type at {path or '<root>'}: {type(obj).__name__}. "
        f"Only None, bool, int, str, dict, and list are allowed."
    )


def canonicalize_json(obj: Any) -> str:
    """Canonicalize a JSON-compatible object to a stable string.

    Raises:
        CanonicalizationError: If object contains floats or non-JSON types
    """
    canonicalized = _canonicalize_value(obj)
    return json.dumps(canonicalized, sort_keys=True, ensure_ascii=False, separators=(",", ":"))


def hash_canonical(obj: Any) -> str:
    """Compute SHA256 of the canonical JSON form, prefixed with "sha256:"."""
    digest = hashlib.sha256(canonicalize_json(obj).encode("utf-8")).hexdigest()
    return f"sha256:{digest}"
