"""
Pool configuration.

A pool carries one tunable: the bisection tolerance ``threshold`` (in the
smallest token unit). Configs can be built in code or loaded from YAML:

    threshold: 1
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import yaml


DEFAULT_THRESHOLD = 1

_KNOWN_KEYS = frozenset({"threshold"})


@dataclass(frozen=True)
class PoolConfig:
    """Pool-wide solver configuration."""

    threshold: int = DEFAULT_THRESHOLD

    def __post_init__(self) -> None:
        if not isinstance(self.threshold, int) or isinstance(self.threshold, bool):
            raise TypeError("threshold must be an int")
        if self.threshold <= 0:
            raise ValueError(f"threshold must be positive: {self.threshold}")


def config_from_dict(obj: Optional[Mapping[str, Any]]) -> PoolConfig:
    """
    Build a PoolConfig from a parsed mapping.

    ``None`` (an empty YAML document) yields the defaults. Unknown keys are
    rejected so that typos do not silently fall back to defaults.
    """
    if obj is None:
        return PoolConfig()
    if not isinstance(obj, Mapping):
        raise ValueError("pool config must be a mapping")
    unknown = sorted(set(obj) - _KNOWN_KEYS)
    if unknown:
        raise ValueError(f"unknown pool config keys: {', '.join(map(str, unknown))}")
    return PoolConfig(threshold=obj.get("threshold", DEFAULT_THRESHOLD))


def load_pool_config(path: Union[str, Path]) -> PoolConfig:
    """Load a PoolConfig from a YAML file."""
    p = Path(path)
    try:
        obj = yaml.safe_load(p.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ValueError(f"invalid pool config YAML in {p}: {exc}") from exc
    return config_from_dict(obj)
