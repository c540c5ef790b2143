"""Client configuration: pydantic options model, TOML files and environment variables.

Priority, lowest to highest: config file, environment variables, explicit
arguments to ``load_config()`` / ``tracehub.init()``.

Config file layout::

    [tracing]
    dsn = "https://public@ingest.example.com/42"
    traces_sample_rate = 0.25
    environment = "production"
    release = "web@1.4.2"
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from tracehub.dsn import Dsn
from tracehub.errors import ConfigError, DsnError, ValidationError
from tracehub.tracer.sampler import coerce_sample_rate
from tracehub.tracer.span_recorder import DEFAULT_MAX_SPANS

CONFIG_FILE_NAME = "tracehub.toml"
CONFIG_SECTION = "tracing"

ENV_VARS = {
    "TRACEHUB_DSN": "dsn",
    "TRACEHUB_TRACES_SAMPLE_RATE": "traces_sample_rate",
    "TRACEHUB_ENVIRONMENT": "environment",
    "TRACEHUB_RELEASE": "release",
    "TRACEHUB_MAX_SPANS": "max_spans",
    "TRACEHUB_DEBUG": "debug",
}


class ClientOptions(BaseModel):
    """Options read by the client, the sampler and the tracestate codec."""

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    dsn: Optional[str] = None
    # Left untyped: an invalid rate disables sampling with a warning instead of failing init.
    traces_sample_rate: Any = None
    traces_sampler: Optional[Callable[[Dict[str, Any]], Any]] = None
    environment: Optional[str] = None
    release: Optional[str] = None
    max_spans: int = Field(default=DEFAULT_MAX_SPANS, ge=1)
    debug: bool = False

    @field_validator("dsn")
    @classmethod
    def _check_dsn(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        try:
            Dsn.parse(value)
        except DsnError as e:
            raise ValueError(str(e)) from e
        return value

    @property
    def tracing_enabled(self) -> bool:
        return self.traces_sample_rate is not None or self.traces_sampler is not None


def load_toml_config(path: str) -> Dict[str, Any]:
    """
    Load a TOML config file.

    Returns:
        The parsed document, or an empty dict if the file doesn't exist

    Raises:
        ConfigError: if the file isn't valid TOML
    """
    config_path = Path(path)
    if not config_path.is_file():
        return {}
    try:
        with config_path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError("Invalid TOML config file", {"path": str(config_path), "error": e}) from e


def find_config_file() -> Optional[str]:
    """Look for ./tracehub.toml, then ~/.tracehub/config.toml."""
    candidates = [
        Path.cwd() / CONFIG_FILE_NAME,
        Path.home() / ".tracehub" / "config.toml",
    ]
    for candidate in candidates:
        if candidate.is_file():
            return str(candidate)
    return None


def load_env_config() -> Dict[str, Any]:
    """Read options from TRACEHUB_* environment variables."""
    loaded: Dict[str, Any] = {}
    for env_name, option in ENV_VARS.items():
        value = os.getenv(env_name)
        if value is None or value == "":
            continue
        if option == "traces_sample_rate":
            try:
                loaded[option] = float(value)
            except ValueError:
                # Reported by the sampler like any other invalid rate.
                loaded[option] = value
            continue
        loaded[option] = value
    return loaded


def load_config(config_file: Optional[str] = None, **overrides: Any) -> ClientOptions:
    """
    Build ClientOptions from file, environment and explicit arguments.

    Args:
        config_file: Path to a TOML file (defaults to find_config_file())
        **overrides: Explicit option values; None values are ignored

    Raises:
        ConfigError: if the file is unreadable or an option is invalid
    """
    merged: Dict[str, Any] = {}

    path = config_file or find_config_file()
    if path:
        section = load_toml_config(path).get(CONFIG_SECTION, {})
        if not isinstance(section, dict):
            raise ConfigError(f"[{CONFIG_SECTION}] must be a table", {"path": path})
        merged.update(section)

    merged.update(load_env_config())
    merged.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return ClientOptions(**merged)
    except PydanticValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError("Invalid configuration", {"errors": errors}) from e


def validate_config(options: ClientOptions) -> List[str]:
    """
    Return human-readable warnings about a configuration that loads but won't behave as expected.
    """
    warnings: List[str] = []
    if options.traces_sample_rate is not None:
        try:
            coerce_sample_rate(options.traces_sample_rate)
        except ValidationError as e:
            warnings.append(f"traces_sample_rate: {e}")
    if options.traces_sampler is not None and options.traces_sample_rate is not None:
        warnings.append("traces_sampler is set, so traces_sample_rate is ignored")
    if not options.tracing_enabled:
        warnings.append("neither traces_sample_rate nor traces_sampler is set, tracing is disabled")
    if options.dsn is None:
        warnings.append("no dsn is set, events will not be sent")
    return warnings
