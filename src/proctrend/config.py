"""Configuration loading for proctrend.

Loads settings from TOML config files with sensible defaults.
Search order: explicit --config path → ~/.config/proctrend/config.toml → defaults only.
Command line options override whatever the file provides.
"""

from __future__ import annotations

import math
import sys
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from proctrend.errors import ConfigError
from proctrend.models import MetricKind, ZoomConfig
from proctrend.probes import NET_KINDS

DEFAULT_CONFIG: dict[str, Any] = {
    "interval_ms": 500,
    "net_kind": "all",
    "exit_after": 3,
    "probe_timeout": 2.0,
    "data_size": {"cpu": 512, "mem": 512, "net": 512, "files": 512},
    "zoom": {"cpu": 1.0, "mem": 1.0, "net": 1.0, "files": 1.0},
}

_DEFAULT_PATH = Path.home() / ".config" / "proctrend" / "config.toml"


@dataclass(slots=True, frozen=True)
class MonitorConfig:
    """Validated settings for one dashboard run."""

    interval_ms: int = 500
    capacities: dict[MetricKind, int] = field(
        default_factory=lambda: {kind: 512 for kind in MetricKind}
    )
    zoom: ZoomConfig = field(default_factory=ZoomConfig)
    net_kind: str = "all"
    exit_after: int = 3  # consecutive dead ticks before giving up; 0 = never
    probe_timeout: float = 2.0

    @property
    def interval(self) -> float:
        """Sampling interval in seconds."""
        return self.interval_ms / 1000.0


def deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Merge overlay into base. Nested dicts are merged at the first level only."""
    merged = dict(base)
    for key, value in overlay.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration, merging user TOML over defaults.

    Args:
        path: Explicit config file path (from --config). If None, tries the
              default location ~/.config/proctrend/config.toml.

    Returns:
        Merged configuration dict.

    Raises:
        ConfigError: If an explicit path doesn't exist or can't be parsed.
    """
    if path is not None:
        if not path.is_file():
            raise ConfigError(f"config file not found: {path}")
        try:
            user_config = tomllib.loads(path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"invalid TOML in {path}: {e}") from e
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigError(f"cannot read config file {path}: {e}") from e
        return deep_merge(DEFAULT_CONFIG, user_config)

    # Try default location silently
    if _DEFAULT_PATH.is_file():
        try:
            user_config = tomllib.loads(_DEFAULT_PATH.read_text(encoding="utf-8"))
            return deep_merge(DEFAULT_CONFIG, user_config)
        except tomllib.TOMLDecodeError:
            print(
                f"proctrend: warning: ignoring invalid TOML in {_DEFAULT_PATH}",
                file=sys.stderr,
            )
        except (OSError, UnicodeDecodeError) as e:
            print(
                f"proctrend: warning: ignoring unreadable {_DEFAULT_PATH}: {e}",
                file=sys.stderr,
            )

    return deep_merge(DEFAULT_CONFIG, {})


def build_config(settings: dict[str, Any]) -> MonitorConfig:
    """Validate a merged settings dict into a MonitorConfig.

    Raises:
        ConfigError: On any out-of-range or unknown value.
    """
    try:
        interval_ms = int(settings["interval_ms"])
        exit_after = int(settings["exit_after"])
        probe_timeout = float(settings["probe_timeout"])
        capacities = {kind: int(settings["data_size"][kind.value]) for kind in MetricKind}
        factors = {kind: float(settings["zoom"][kind.value]) for kind in MetricKind}
    except (KeyError, TypeError, ValueError, OverflowError) as e:
        raise ConfigError(f"invalid configuration value: {e}") from e

    net_kind = str(settings["net_kind"]).lower()

    if interval_ms <= 0:
        raise ConfigError(f"interval must be > 0 ms, got {interval_ms}")
    if exit_after < 0:
        raise ConfigError(f"exit-after must be >= 0, got {exit_after}")
    if not math.isfinite(probe_timeout) or probe_timeout <= 0:
        raise ConfigError(f"probe timeout must be a finite number > 0, got {probe_timeout}")
    for kind, capacity in capacities.items():
        if capacity < 1:
            raise ConfigError(f"{kind.value} data size must be >= 1, got {capacity}")
    for kind, factor in factors.items():
        if not math.isfinite(factor) or factor <= 0:
            raise ConfigError(f"{kind.value} zoom must be a finite number > 0, got {factor}")
    if net_kind not in NET_KINDS:
        raise ConfigError(
            f"unknown net kind {net_kind!r} (choose from {', '.join(NET_KINDS)})"
        )

    return MonitorConfig(
        interval_ms=interval_ms,
        capacities=capacities,
        zoom=ZoomConfig.from_mapping(factors),
        net_kind=net_kind,
        exit_after=exit_after,
        probe_timeout=probe_timeout,
    )
