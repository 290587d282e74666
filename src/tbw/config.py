"""Run configuration (defaults + optional `config.yaml` overrides)."""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping

import numpy as np
import yaml

from .grid import XGrid

CONFIG_SECTION = "tbw"

# YAML spellings accepted for each field
_KEY_ALIASES: dict[str, str] = {
    "hoi": "hoi",
    "height_of_interest": "hoi",
    "x_bound": "x_bound",
    "dx": "dx",
    "sampling_rate": "dx",
    "threshold": "threshold",
}


@dataclass(frozen=True)
class TBWConfig:
    """Parameters shared by the subject estimator and the group aggregator.

    hoi:
        Height of interest: probability level at which binding points are read.
    x_bound:
        Half-width (ms) of the SOA grid the sigmoids are evaluated on.
    dx:
        Grid step (ms). Called `sampling_rate` in config files and on the CLI.
    threshold:
        Group inclusion cutoff; a subject's smallest TBW must exceed it.
    """

    hoi: float = 0.5
    x_bound: float = 750.0
    dx: float = 0.1
    threshold: float = 0.0

    def __post_init__(self) -> None:
        if not (0.0 < float(self.hoi) < 1.0):
            raise ValueError(f"hoi must satisfy 0 < hoi < 1. Got {self.hoi!r}")
        if not np.isfinite(self.threshold):
            raise ValueError(f"threshold must be finite. Got {self.threshold!r}")
        # validates x_bound/dx
        XGrid(x_bound=float(self.x_bound), dx=float(self.dx))

    @property
    def grid(self) -> XGrid:
        return XGrid(x_bound=float(self.x_bound), dx=float(self.dx))

    def with_overrides(self, **overrides: Any) -> "TBWConfig":
        """Return a copy with non-None overrides applied (used by CLI flags)."""

        values = {k: float(v) for k, v in overrides.items() if v is not None}
        return replace(self, **values)


def config_from_mapping(raw: Mapping[str, Any]) -> TBWConfig:
    values: dict[str, float] = {}
    for key, value in raw.items():
        name = _KEY_ALIASES.get(str(key))
        if name is None:
            known = sorted(_KEY_ALIASES)
            raise ValueError(f"Unknown {CONFIG_SECTION}.* key: {key!r}. Known keys: {known}")
        try:
            values[name] = float(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"{CONFIG_SECTION}.{key} must be numeric. Got {value!r}") from exc
    return TBWConfig(**values)


def load_config(config_path: str | Path) -> TBWConfig:
    """Read the `tbw:` section of a YAML config file.

    Missing keys fall back to `TBWConfig` defaults; a file without a `tbw`
    section yields the defaults.
    """

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")
    raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    if raw is None:
        return TBWConfig()
    if not isinstance(raw, dict):
        raise ValueError("config.yaml must be a mapping at the top level")
    root = raw.get(CONFIG_SECTION)
    if root is None:
        return TBWConfig()
    if not isinstance(root, dict):
        raise ValueError(f"config.yaml key {CONFIG_SECTION!r} must be a mapping")
    return config_from_mapping(root)
