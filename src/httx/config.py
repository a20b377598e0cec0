import json
import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from httx import DEFAULT_CONFIG_FILE_PATHS, DEFAULT_MAX_BODY_SIZE, DEFAULT_TIMEOUT_MS

log = logging.getLogger(__name__)

ENV_TIMEOUT = "HTTX_TIMEOUT"
ENV_VERBOSE = "HTTX_VERBOSE"
ENV_BASE_URL = "HTTX_BASE_URL"

_TRUTHY = ("1", "true", "yes", "on")

_CAMEL_CASE_KEYS = {
    "baseUrl": "base_url",
    "defaultHeaders": "default_headers",
    "followRedirects": "follow_redirects",
    "certKey": "cert_key",
    "maxBodySize": "max_body_size",
}


@dataclass(frozen=True)
class HttxConfig:
    base_url: str = ""
    timeout: int = DEFAULT_TIMEOUT_MS
    default_headers: Dict[str, str] = field(default_factory=dict)
    verbose: bool = False
    follow_redirects: bool = True
    verify: bool = True
    cert: Optional[str] = None
    cert_key: Optional[str] = None
    proxy: Optional[str] = None
    max_body_size: int = DEFAULT_MAX_BODY_SIZE


_FIELD_NAMES = {f.name for f in fields(HttxConfig)}


def find_config_file(candidates: Iterable[Union[str, os.PathLike]] = DEFAULT_CONFIG_FILE_PATHS) -> Optional[Path]:
    """Return the first existing config file among ``candidates``."""
    for candidate in candidates:
        path = Path(candidate).expanduser()
        if path.is_file():
            return path
    return None


def load_config_file(path: Union[str, os.PathLike]) -> Dict[str, Any]:
    """Load config values from a JSON file. Returns an empty dict if the file doesn't exist."""
    expanded = Path(path).expanduser()
    if not expanded.exists():
        return {}

    data = json.loads(expanded.read_text())
    if not isinstance(data, dict):
        raise ValueError(f"Config file {expanded} must contain a JSON object")

    values: Dict[str, Any] = {}
    for key, value in data.items():
        name = _CAMEL_CASE_KEYS.get(key, key)
        if name not in _FIELD_NAMES:
            log.warning("Ignoring unknown config key '%s' in %s", key, expanded)
            continue
        values[name] = value
    log.debug("Loaded config from %s", expanded)
    return values


def config_from_environ(environ: Mapping[str, str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    timeout = environ.get(ENV_TIMEOUT)
    if timeout:
        try:
            values["timeout"] = int(timeout)
        except ValueError:
            raise ValueError(f"{ENV_TIMEOUT} must be an integer number of milliseconds, got '{timeout}'") from None
    verbose = environ.get(ENV_VERBOSE)
    if verbose:
        values["verbose"] = verbose.strip().lower() in _TRUTHY
    base_url = environ.get(ENV_BASE_URL)
    if base_url:
        values["base_url"] = base_url
    return values


def resolve_config(
    config_path: Optional[Union[str, os.PathLike]] = None,
    environ: Optional[Mapping[str, str]] = None,
    **overrides: Any,
) -> HttxConfig:
    """Resolve the effective configuration.

    Resolution order (later wins):
    1. Builtin defaults
    2. Config file (``config_path``, else the first of the conventional paths)
    3. Environment variables (HTTX_TIMEOUT, HTTX_VERBOSE, HTTX_BASE_URL)
    4. ``overrides`` whose value is not None
    """
    path = Path(config_path) if config_path else find_config_file()
    values: Dict[str, Any] = load_config_file(path) if path else {}
    values.update(config_from_environ(os.environ if environ is None else environ))

    for name, value in overrides.items():
        if name not in _FIELD_NAMES:
            raise TypeError(f"Unknown config option: {name}")
        if value is not None:
            values[name] = value

    return replace(HttxConfig(), **values)
