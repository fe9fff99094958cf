"""
Data Transfer Objects (DTOs) for ROI analysis runs.

Design rules
------------
* All DTOs are immutable (frozen=True).  Callers build a new DTO and pass it
  to the engine instead of threading loose keyword arguments around.
* ``from_dict`` / ``from_yaml`` / ``from_json`` keep deserialisation in one place.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from config import ANALYSIS_ACCURATE, ANALYSIS_MIN_FRACTION, ROI_GRANULARITY


# ---------------------------------------------------------------------------
# Analysis parameters DTO
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AnalysisParamsDTO:
    """
    Immutable configuration for one ROI statistics run.

    ``frames`` / ``gates`` of None mean "all of them".
    """

    accurate:       bool                        = ANALYSIS_ACCURATE
    inverse:        bool                        = False
    granularity:    int                         = ROI_GRANULARITY
    min_fraction:   float                       = ANALYSIS_MIN_FRACTION
    frames:         Optional[Tuple[int, ...]]   = None
    gates:          Optional[Tuple[int, ...]]   = None

    def __post_init__(self) -> None:
        if self.granularity < 1:
            raise ValueError(f"granularity must be >= 1, got {self.granularity}")
        if not 0.0 <= self.min_fraction < 1.0:
            raise ValueError(f"min_fraction must be in [0, 1), got {self.min_fraction}")

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "AnalysisParamsDTO":
        frames_raw = d.get("frames")
        gates_raw = d.get("gates")
        return AnalysisParamsDTO(
            accurate     = bool(d.get("accurate",       ANALYSIS_ACCURATE)),
            inverse      = bool(d.get("inverse",        False)),
            granularity  = int(d.get("granularity",     ROI_GRANULARITY)),
            min_fraction = float(d.get("min_fraction",  ANALYSIS_MIN_FRACTION)),
            frames       = tuple(int(f) for f in frames_raw) if frames_raw is not None else None,
            gates        = tuple(int(g) for g in gates_raw) if gates_raw is not None else None,
        )

    @staticmethod
    def from_yaml(path: str) -> "AnalysisParamsDTO":
        """Load parameters from a YAML file."""
        import yaml  # soft dependency, only needed for file-driven runs
        with open(path, encoding="utf-8") as fh:
            d = yaml.safe_load(fh)
        return AnalysisParamsDTO.from_dict(d or {})

    @staticmethod
    def from_json(path: str) -> "AnalysisParamsDTO":
        """Load parameters from a JSON file."""
        import json
        with open(path, encoding="utf-8") as fh:
            d = json.load(fh)
        return AnalysisParamsDTO.from_dict(d)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accurate":     self.accurate,
            "inverse":      self.inverse,
            "granularity":  self.granularity,
            "min_fraction": self.min_fraction,
            "frames":       list(self.frames) if self.frames is not None else None,
            "gates":        list(self.gates) if self.gates is not None else None,
        }
