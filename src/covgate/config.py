"""Configuration parsing from ``.covgate.yml``."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from covgate.adapters.registry import available_parsers
from covgate.errors import UnknownElementKindError
from covgate.model.elements import ELEMENTS, get_element
from covgate.threshold import Threshold

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".covgate.yml"

_ENV_VAR_RE = re.compile(r"\$\{(\w+)\}")

_MAX_PERCENTAGE = 100.0


def _resolve_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with environment variable values."""

    def _replace(match: re.Match[str]) -> str:
        var = match.group(1)
        resolved = os.environ.get(var)
        if resolved is None:
            logger.warning("Environment variable %s is not set (referenced in config)", var)
            return ""
        return resolved

    return _ENV_VAR_RE.sub(_replace, value)


def _resolve_value(value: Any) -> Any:
    if isinstance(value, str):
        return _resolve_env_vars(value)
    if isinstance(value, dict):
        return _resolve_dict(value)
    if isinstance(value, list):
        return [_resolve_value(item) for item in value]
    return value


def _resolve_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Recursively resolve environment variables in a dictionary."""
    return {key: _resolve_value(value) for key, value in data.items()}


@dataclass
class AdapterConfig:
    """One report to parse."""

    type: str
    """Report dialect (``java`` or ``cobertura``)."""

    path: str
    """Report file, relative to the config root unless absolute."""

    name: str = ""
    """Report name (empty = file stem)."""


@dataclass
class ThresholdConfig:
    """Raw threshold entry, resolved into a ``Threshold`` by ``build_thresholds``."""

    target: str
    """Element kind name (line, branch, method, class, file, package, ...)."""

    unhealthy: float = 0.0
    """Minimum percentage below which the result is unhealthy."""

    unstable: float = 0.0
    """Minimum percentage below which the result is unstable."""


@dataclass
class CovgateConfig:
    """Complete covgate configuration from ``.covgate.yml``."""

    root: str
    """Directory that relative adapter paths are resolved against."""

    adapters: list[AdapterConfig] = field(default_factory=list)
    """Reports to parse."""

    thresholds: list[ThresholdConfig] = field(default_factory=list)
    """Health thresholds."""

    fail_unhealthy: bool = False
    """Fail the build when a threshold is unhealthy."""

    fail_unstable: bool = False
    """Fail the build when a threshold is unstable."""

    fail_no_reports: bool = False
    """Fail the build when no coverage data was found."""

    skip_failed_adapters: bool = False
    """Skip unreadable reports instead of aborting."""

    raw: dict[str, Any] = field(default_factory=dict)
    """Raw parsed YAML for extension/debugging."""


def _as_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes", "on"}
    return bool(value)


def _as_float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning("Invalid percentage %r in config, using %s", value, default)
        return default


def _parse_adapters(raw: dict[str, Any]) -> list[AdapterConfig]:
    """Parse the ``adapters`` list from raw YAML."""
    adapters_raw = raw.get("adapters", [])
    if not isinstance(adapters_raw, list):
        adapters_raw = []

    adapters: list[AdapterConfig] = []
    for entry in adapters_raw:
        if not isinstance(entry, dict):
            continue
        adapters.append(
            AdapterConfig(
                type=str(entry.get("type", "java")),
                path=str(entry.get("path", "")),
                name=str(entry.get("name", "")),
            )
        )
    return adapters


def _parse_thresholds(raw: dict[str, Any]) -> list[ThresholdConfig]:
    """Parse the ``thresholds`` list from raw YAML."""
    thresholds_raw = raw.get("thresholds", [])
    if not isinstance(thresholds_raw, list):
        thresholds_raw = []

    thresholds: list[ThresholdConfig] = []
    for entry in thresholds_raw:
        if not isinstance(entry, dict):
            continue
        thresholds.append(
            ThresholdConfig(
                target=str(entry.get("target", "")),
                unhealthy=_as_float(entry.get("unhealthy", 0.0), 0.0),
                unstable=_as_float(entry.get("unstable", 0.0), 0.0),
            )
        )
    return thresholds


def parse_threshold_spec(spec: str) -> ThresholdConfig:
    """Parse ``KIND:UNHEALTHY:UNSTABLE`` (e.g. ``line:40:60``) from the CLI.

    Raises:
        ValueError: The spec does not have three parts or a percentage is
            not a number.
    """
    parts = [part.strip() for part in spec.split(":")]
    expected_parts = 3
    if len(parts) != expected_parts or not parts[0]:
        msg = f"Threshold must look like KIND:UNHEALTHY:UNSTABLE (got: {spec})"
        raise ValueError(msg)
    return ThresholdConfig(target=parts[0], unhealthy=float(parts[1]), unstable=float(parts[2]))


def load_config(path: str | Path) -> CovgateConfig:
    """Load ``.covgate.yml`` from a directory, or a config file given directly.

    Falls back to defaults when the file is missing or incomplete.
    """
    target = Path(path).resolve()
    if target.is_dir():
        root_path = target
        config_file = target / CONFIG_FILENAME
    else:
        root_path = target.parent
        config_file = target

    raw: dict[str, Any] = {}
    if config_file.is_file():
        parsed = yaml.safe_load(config_file.read_text(encoding="utf-8"))
        if isinstance(parsed, dict):
            raw = _resolve_dict(parsed)
    else:
        logger.debug("No config file at %s, using defaults", config_file)

    return CovgateConfig(
        root=str(raw.get("root", root_path)),
        adapters=_parse_adapters(raw),
        thresholds=_parse_thresholds(raw),
        fail_unhealthy=_as_bool(raw.get("fail_unhealthy"), default=False),
        fail_unstable=_as_bool(raw.get("fail_unstable"), default=False),
        fail_no_reports=_as_bool(raw.get("fail_no_reports"), default=False),
        skip_failed_adapters=_as_bool(raw.get("skip_failed_adapters"), default=False),
        raw=raw,
    )


def _validate_adapters(adapters: list[AdapterConfig]) -> list[str]:
    """Validate adapter entries."""
    errors: list[str] = []
    known = available_parsers()
    for index, adapter in enumerate(adapters):
        if adapter.type.strip().lower() not in known:
            errors.append(
                f"adapters[{index}].type must be one of: {', '.join(known)} "
                f"(got: {adapter.type})"
            )
        if not adapter.path:
            errors.append(f"adapters[{index}].path is required")
    return errors


def _validate_thresholds(thresholds: list[ThresholdConfig]) -> list[str]:
    """Validate threshold entries."""
    errors: list[str] = []
    seen: set[str] = set()
    for index, threshold in enumerate(thresholds):
        prefix = f"thresholds[{index}]"
        if threshold.target not in ELEMENTS:
            names = ", ".join(element.name.lower() for element in ELEMENTS)
            errors.append(f"{prefix}.target must be one of: {names} (got: {threshold.target})")
        else:
            key = get_element(threshold.target).name
            if key in seen:
                errors.append(f"{prefix}.target {threshold.target} is configured more than once")
            seen.add(key)

        for label, value in (("unhealthy", threshold.unhealthy), ("unstable", threshold.unstable)):
            if not 0.0 <= value <= _MAX_PERCENTAGE:
                errors.append(f"{prefix}.{label} must be between 0 and 100 (got: {value})")

        if threshold.unhealthy > threshold.unstable:
            errors.append(
                f"{prefix}.unhealthy must not exceed {prefix}.unstable "
                f"(got: {threshold.unhealthy} > {threshold.unstable})"
            )
    return errors


def validate_config(config: CovgateConfig) -> list[str]:
    """Validate the configuration and return a list of error messages.

    Returns an empty list if the configuration is valid.
    """
    errors: list[str] = []
    errors.extend(_validate_adapters(config.adapters))
    errors.extend(_validate_thresholds(config.thresholds))
    return errors


def build_thresholds(config: CovgateConfig) -> list[Threshold]:
    """Resolve the configured threshold entries against the element taxonomy.

    Raises:
        UnknownElementKindError: A target is not a registered element kind.
        ValueError: A percentage is out of range.
    """
    thresholds: list[Threshold] = []
    for entry in config.thresholds:
        try:
            element = get_element(entry.target)
        except UnknownElementKindError:
            logger.error("Unknown threshold target %r", entry.target)
            raise
        thresholds.append(
            Threshold(
                applies_to=element,
                unhealthy_min=entry.unhealthy,
                unstable_min=entry.unstable,
            )
        )
    return thresholds
