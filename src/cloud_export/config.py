"""Configuration constants and config-file loading for cloud-export."""

import json
import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from cloud_export.errors import ConfigError

# Config file location. First file found is used.
CONFIG_FILES: list[Path] = [
    Path("private/config.json"),
    Path("~/.config/cloud-export/config.json").expanduser(),
]

# Where a fresh Google token pair is persisted when a step does not say otherwise.
DEFAULT_TOKEN_CACHE_PATH: Path = Path("~/.cache/cloud-export/google-token.json").expanduser()

# Local port receiving the OAuth redirect.
DEFAULT_AUTH_CALLBACK_PORT: int = 3124

_VARIABLE_RE = re.compile(r"\$([A-Za-z_][A-Za-z0-9_]*)")


def resolve_config_file(explicit: Path | None = None) -> Path:
    """Return the explicit config path, or the first existing default one."""
    if explicit is not None:
        return explicit.expanduser()
    for candidate in CONFIG_FILES:
        if candidate.is_file():
            return candidate
    msg = f"Cannot find config file, none of those exist: {[str(p) for p in CONFIG_FILES]!r}"
    raise ConfigError(msg)


def _resolve_variable(value: str, environ: Mapping[str, str]) -> str:
    # "$HOME"-style values point at the environment
    if value.startswith("$"):
        return environ.get(value[1:], value)
    return value


def substitute_variables(
    value: Any,
    variables: Mapping[str, str],
    environ: Mapping[str, str] | None = None,
) -> Any:
    """Replace $NAME placeholders in every string nested inside value.

    Unknown names are left as they are.
    """
    if environ is None:
        environ = os.environ
    if isinstance(value, str):

        def replace(match: re.Match[str]) -> str:
            name = match.group(1)
            if name not in variables:
                return match.group(0)
            return _resolve_variable(str(variables[name]), environ)

        return _VARIABLE_RE.sub(replace, value)
    if isinstance(value, list):
        return [substitute_variables(x, variables, environ) for x in value]
    if isinstance(value, dict):
        return {k: substitute_variables(v, variables, environ) for k, v in value.items()}
    return value


def read_config(path: Path, environ: Mapping[str, str] | None = None) -> list[dict[str, Any]]:
    """Read a config file and return its step records with variables substituted."""
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        msg = f"Config file {str(path)!r} not found"
        raise ConfigError(msg) from None
    except json.JSONDecodeError as e:
        msg = f"Config file {str(path)!r} is not valid JSON: {e}"
        raise ConfigError(msg) from e

    if not isinstance(raw, dict) or not isinstance(raw.get("steps"), list):
        msg = f"Config file {str(path)!r} must be an object with a 'steps' list"
        raise ConfigError(msg)

    variables = raw.get("variables") or {}
    steps: list[dict[str, Any]] = substitute_variables(raw["steps"], variables, environ)
    return steps
