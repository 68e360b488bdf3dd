"""Environment-driven configuration (internal)."""

import os
from typing import Mapping, Optional

from lazymerge.kernel.options import CodecOptions

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _flag_from_env(environ: Mapping[str, str], var_name: str, default: bool) -> bool:
    raw = environ.get(var_name)
    if not raw:
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    return default


def _int_from_env(environ: Mapping[str, str], var_name: str, default: int) -> int:
    raw = environ.get(var_name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value >= 1 else default


def options_from_env(environ: Optional[Mapping[str, str]] = None) -> CodecOptions:
    """Build CodecOptions from LAZYMERGE_* variables.

    Unset or unparsable values fall back to the defaults.
    """
    if environ is None:
        environ = os.environ
    defaults = CodecOptions()
    return CodecOptions(
        borrow_spans=_flag_from_env(environ, "LAZYMERGE_BORROW_SPANS", defaults.borrow_spans),
        coalesce_packed=_flag_from_env(environ, "LAZYMERGE_COALESCE_PACKED", defaults.coalesce_packed),
        validate_utf8=_flag_from_env(environ, "LAZYMERGE_VALIDATE_UTF8", defaults.validate_utf8),
        max_depth=_int_from_env(environ, "LAZYMERGE_MAX_DEPTH", defaults.max_depth),
    )
