"""
Configuration for Autoflow.

Tunable constants (detection window, segmentation gap, replay timing)
live in small dataclasses with the production defaults. A YAML file can
override any subset of them:

    autoflow:
      detection:
        pattern_length: 3
        repeat_threshold: 3
        history_capacity: 50
      segmentation:
        gap_ms: 300000
      replay:
        resolve_timeout: 5.0
        frame_interval: 0.016666
        settle_delay: 0.5
      tabs:
        settle_delay: 3.0
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Type, TypeVar, Union

import yaml  # Requires PyYAML


class ConfigError(Exception):
    """Raised when a configuration file is missing or invalid."""


@dataclass
class DetectionConfig:
    """
    Parameters of the repeated-sequence detector.

    Attributes:
        pattern_length:
            Length K of the candidate pattern (the most recent K actions).
        repeat_threshold:
            Minimum number T of matching windows before a proposal is made.
        history_capacity:
            Capacity C of the bounded history buffer.
    """

    pattern_length: int = 3
    repeat_threshold: int = 3
    history_capacity: int = 50

    def validate(self) -> None:
        if self.pattern_length < 1:
            raise ConfigError("detection.pattern_length must be >= 1")
        if self.repeat_threshold < 1:
            raise ConfigError("detection.repeat_threshold must be >= 1")
        if self.history_capacity < 2 * self.pattern_length:
            raise ConfigError(
                "detection.history_capacity must hold at least two patterns"
            )


@dataclass
class SegmentationConfig:
    """Largest gap (ms) between two events of the same workflow."""

    gap_ms: int = 5 * 60 * 1000

    def validate(self) -> None:
        if self.gap_ms < 0:
            raise ConfigError("segmentation.gap_ms must be >= 0")


@dataclass
class ReplayConfig:
    """
    Timing of the replay engine, in seconds.

    Attributes:
        resolve_timeout:
            How long a step may spend looking for its element.
        frame_interval:
            Delay between two resolution attempts (one display frame).
        settle_delay:
            Pause after each dispatched interaction.
        highlight_style:
            Outline applied to the element while it is being acted upon.
    """

    resolve_timeout: float = 5.0
    frame_interval: float = 1.0 / 60.0
    settle_delay: float = 0.5
    highlight_style: str = "3px solid #FF00FF"

    def validate(self) -> None:
        if self.resolve_timeout < 0:
            raise ConfigError("replay.resolve_timeout must be >= 0")
        if self.frame_interval < 0:
            raise ConfigError("replay.frame_interval must be >= 0")
        if self.settle_delay < 0:
            raise ConfigError("replay.settle_delay must be >= 0")


@dataclass
class TabConfig:
    """Wait (seconds) after opening a new tab before it is used."""

    settle_delay: float = 3.0

    def validate(self) -> None:
        if self.settle_delay < 0:
            raise ConfigError("tabs.settle_delay must be >= 0")


@dataclass
class AutoflowConfig:
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    segmentation: SegmentationConfig = field(default_factory=SegmentationConfig)
    replay: ReplayConfig = field(default_factory=ReplayConfig)
    tabs: TabConfig = field(default_factory=TabConfig)

    def validate(self) -> None:
        self.detection.validate()
        self.segmentation.validate()
        self.replay.validate()
        self.tabs.validate()

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "AutoflowConfig":
        """
        Build a config from a (possibly partial) mapping.

        Unknown sections or keys raise ConfigError so that typos do not
        silently fall back to defaults.
        """
        data = dict(data or {})
        sections = {
            "detection": DetectionConfig,
            "segmentation": SegmentationConfig,
            "replay": ReplayConfig,
            "tabs": TabConfig,
        }
        unknown = set(data) - set(sections)
        if unknown:
            raise ConfigError(f"Unknown config sections: {sorted(unknown)}")

        kwargs = {
            name: _build_section(section_cls, name, data.get(name))
            for name, section_cls in sections.items()
        }
        config = cls(**kwargs)
        config.validate()
        return config


_T = TypeVar("_T")


def _build_section(section_cls: Type[_T], name: str, raw: Any) -> _T:
    if raw is None:
        return section_cls()
    if not isinstance(raw, dict):
        raise ConfigError(f"Config section '{name}' must be a mapping")

    allowed = {f.name: f for f in fields(section_cls)}
    unknown = set(raw) - set(allowed)
    if unknown:
        raise ConfigError(f"Unknown keys in '{name}': {sorted(unknown)}")

    defaults = section_cls()
    values: Dict[str, Any] = {}
    for key, value in raw.items():
        values[key] = _coerce(name, key, getattr(defaults, key), value)
    return section_cls(**values)


def _coerce(section: str, key: str, default: Any, value: Any) -> Any:
    """
    Check `value` against the type of `default`.

    Ints are accepted where floats are expected; nothing else converts.
    Booleans never count as numbers.
    """
    if isinstance(value, bool):
        ok = isinstance(default, bool)
    elif isinstance(default, float):
        ok = isinstance(value, (int, float))
    else:
        ok = isinstance(value, type(default))
    if not ok:
        raise ConfigError(
            f"Invalid value for {section}.{key}: {value!r} "
            f"(expected {type(default).__name__})"
        )
    return type(default)(value)


def load_config(path: Union[str, Path]) -> AutoflowConfig:
    """
    Load an AutoflowConfig from a YAML file with a root `autoflow` key.

    Raises:
        ConfigError if the file is missing, unparsable, or invalid.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(data, dict) or "autoflow" not in data:
        raise ConfigError("Config root must contain an 'autoflow' key")
    return AutoflowConfig.from_dict(data["autoflow"])
