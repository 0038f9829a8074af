"""Check configuration — where the inputs live and how to report.

A check needs two paths (the smaps snapshot and the VM's trace log)
and two switches (debug tracing and fail-fast).  They can come from
three places, later ones overriding earlier ones:

    1. A JSON config file::

           {"smaps_file": "smaps-copy.txt", "trace_file": "ps-1234.log",
            "debug": false, "fail_fast": true}

    2. Environment variables — ``PAGECHECK_SMAPS_FILE``,
       ``PAGECHECK_TRACE_FILE``, ``PAGECHECK_DEBUG``,
       ``PAGECHECK_FAIL_FAST``.
    3. Explicit arguments (the command line).

``resolve_config`` merges them into a frozen ``CheckConfig``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

ENV_SMAPS_FILE = "PAGECHECK_SMAPS_FILE"
ENV_TRACE_FILE = "PAGECHECK_TRACE_FILE"
ENV_DEBUG = "PAGECHECK_DEBUG"
ENV_FAIL_FAST = "PAGECHECK_FAIL_FAST"

_TRUE_WORDS = frozenset({"1", "true", "yes", "on"})
_FALSE_WORDS = frozenset({"0", "false", "no", "off"})


class ConfigError(RuntimeError):
    """Raise when the check cannot be configured.

    Examples: unreadable config file, bad boolean, missing input path.
    """


@dataclass(frozen=True)
class CheckConfig:
    """Everything a single check run needs."""

    smaps_path: Path
    trace_path: Path
    debug: bool = False
    fail_fast: bool = True


def parse_bool(value: str, *, name: str) -> bool:
    """Interpret an environment-style boolean.

    Raises:
        ConfigError: If *value* is not a recognised boolean word.

    """
    word = value.strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    msg = f"{name} must be a boolean, got {value!r}"
    raise ConfigError(msg)


def load_config_file(path: Path) -> dict[str, Any]:
    """Read settings from a JSON config file.

    Returns:
        Settings keyed ``smaps_file``, ``trace_file``, ``debug``,
        ``fail_fast`` (only those present in the file).

    Raises:
        ConfigError: If the file cannot be read or holds bad values.

    """
    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        msg = f"Cannot load config file: {e}"
        raise ConfigError(msg) from e
    if not isinstance(data, dict):
        msg = f"Config file {path} must hold a JSON object"
        raise ConfigError(msg)

    settings: dict[str, Any] = {}
    for key in ("smaps_file", "trace_file"):
        if key in data:
            if not isinstance(data[key], str):
                msg = f"{key} must be a string"
                raise ConfigError(msg)
            settings[key] = data[key]
    for key in ("debug", "fail_fast"):
        if key in data:
            if not isinstance(data[key], bool):
                msg = f"{key} must be true or false"
                raise ConfigError(msg)
            settings[key] = data[key]
    return settings


def settings_from_environ(environ: Mapping[str, str]) -> dict[str, Any]:
    """Read settings from environment variables.

    Raises:
        ConfigError: If a boolean variable holds an unrecognised word.

    """
    settings: dict[str, Any] = {}
    if environ.get(ENV_SMAPS_FILE):
        settings["smaps_file"] = environ[ENV_SMAPS_FILE]
    if environ.get(ENV_TRACE_FILE):
        settings["trace_file"] = environ[ENV_TRACE_FILE]
    if environ.get(ENV_DEBUG):
        settings["debug"] = parse_bool(environ[ENV_DEBUG], name=ENV_DEBUG)
    if environ.get(ENV_FAIL_FAST):
        settings["fail_fast"] = parse_bool(environ[ENV_FAIL_FAST], name=ENV_FAIL_FAST)
    return settings


def resolve_config(
    *,
    config_file: Path | None = None,
    environ: Mapping[str, str] | None = None,
    smaps_file: str | None = None,
    trace_file: str | None = None,
    debug: bool | None = None,
    fail_fast: bool | None = None,
) -> CheckConfig:
    """Merge file, environment, and explicit settings.

    Explicit arguments left as None do not override anything.

    Raises:
        ConfigError: If a source is invalid or an input path is missing.

    """
    settings: dict[str, Any] = {}
    if config_file is not None:
        settings.update(load_config_file(config_file))
    if environ is not None:
        settings.update(settings_from_environ(environ))
    explicit = {
        "smaps_file": smaps_file,
        "trace_file": trace_file,
        "debug": debug,
        "fail_fast": fail_fast,
    }
    settings.update({k: v for k, v in explicit.items() if v is not None})

    for key, flag in (("smaps_file", "--smaps"), ("trace_file", "--trace")):
        if not settings.get(key):
            msg = f"No {key.replace('_', ' ')} given (use {flag} or the config/environment)"
            raise ConfigError(msg)

    return CheckConfig(
        smaps_path=Path(settings["smaps_file"]),
        trace_path=Path(settings["trace_file"]),
        debug=settings.get("debug", False),
        fail_fast=settings.get("fail_fast", True),
    )
