"""
Fractionally weighted ROI statistics.

``WeightedAccumulator`` plugs straight into ``calculate_on_data_set`` as the
per-voxel calculation; ``analyze_roi`` drives it over every frame and gate
and reports through the shared update function.
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from config import ANALYSIS_MIN_FRACTION
from core.data_set import DataSet, Voxel
from core.dto import AnalysisParamsDTO
from core.progress import UpdateFunc, close, null_update
from roi.classification import calculate_on_data_set
from roi.roi import Roi

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoiStatistics:
    """Summary of one ROI over one frame/gate."""

    roi_name:   str
    frame:      int
    gate:       int
    voxels:     float   # sum of fractions
    count:      int     # voxels with a non-zero weight
    total:      float   # sum of fraction * value
    mean:       float
    variance:   float
    std_dev:    float
    std_err:    float
    min:        float
    max:        float
    median:     float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class WeightedAccumulator:
    """
    Running weighted statistics over ``(voxel, value, fraction)`` calls.

    Mean and variance follow the incremental weighted (West) update; the
    variance divisor ``sum(w) - sum(w^2) / sum(w)`` makes it unbiased for
    reliability weights.  Values with ``fraction <= min_fraction`` are ignored.
    """

    def __init__(self, min_fraction: float = ANALYSIS_MIN_FRACTION) -> None:
        self.min_fraction = float(min_fraction)
        self.count = 0
        self.weight_sum = 0.0
        self.weight_sq_sum = 0.0
        self.total = 0.0
        self.mean = 0.0
        self._m2 = 0.0
        self.min = math.inf
        self.max = -math.inf
        self._values: List[float] = []
        self._weights: List[float] = []

    def __call__(self, voxel: Voxel, value: float, fraction: float) -> None:
        self.add(value, fraction)

    def add(self, value: float, fraction: float) -> None:
        if fraction <= self.min_fraction:
            return
        self.count += 1
        self.weight_sum += fraction
        self.weight_sq_sum += fraction * fraction
        self.total += fraction * value

        delta = value - self.mean
        self.mean += (fraction / self.weight_sum) * delta
        self._m2 += fraction * delta * (value - self.mean)

        self.min = min(self.min, value)
        self.max = max(self.max, value)
        self._values.append(value)
        self._weights.append(fraction)

    @property
    def variance(self) -> float:
        """Unbiased weighted variance, NaN while the divisor is zero (a single voxel)."""
        if self.weight_sum <= 0.0:
            return math.nan
        divisor = self.weight_sum - self.weight_sq_sum / self.weight_sum
        if divisor <= 0.0:
            return math.nan
        return self._m2 / divisor

    @property
    def median(self) -> float:
        """Weighted median: the first value whose cumulative weight reaches half the total."""
        if not self._values:
            return math.nan
        values = np.asarray(self._values, dtype=np.float64)
        weights = np.asarray(self._weights, dtype=np.float64)
        order = np.argsort(values, kind="stable")
        cumulative = np.cumsum(weights[order])
        idx = int(np.searchsorted(cumulative, 0.5 * cumulative[-1], side="left"))
        return float(values[order][min(idx, values.size - 1)])

    def result(self, roi_name: str = "", frame: int = 0, gate: int = 0) -> RoiStatistics:
        empty = self.count == 0
        variance = self.variance
        std_dev = math.sqrt(variance) if not math.isnan(variance) else math.nan
        std_err = std_dev / math.sqrt(self.weight_sum) if not empty else math.nan
        return RoiStatistics(
            roi_name=roi_name,
            frame=frame,
            gate=gate,
            voxels=self.weight_sum,
            count=self.count,
            total=self.total,
            mean=math.nan if empty else self.mean,
            variance=variance,
            std_dev=std_dev,
            std_err=std_err,
            min=math.nan if empty else self.min,
            max=math.nan if empty else self.max,
            median=self.median,
        )


def analyze_roi(
    roi: Roi,
    ds: DataSet,
    params: Optional[AnalysisParamsDTO] = None,
    update: UpdateFunc = null_update,
) -> List[RoiStatistics]:
    """
    Statistics of ``roi`` for each requested frame x gate of ``ds``.

    ``update`` is polled between whole-ROI passes; returning False stops the
    run and the passes finished so far are returned.
    """
    params = params or AnalysisParamsDTO()
    frames = _select(params.frames, ds.num_frames, "frame")
    gates = _select(params.gates, ds.num_gates, "gate")

    passes = [(f, g) for f in frames for g in gates]
    results: List[RoiStatistics] = []
    for i, (frame, gate) in enumerate(passes):
        message = f"Analyzing ROI {roi.name!r}: frame {frame}, gate {gate}"
        if not update(message, i / len(passes)):
            logger.info("ROI analysis cancelled after %d of %d passes", i, len(passes))
            break

        accumulator = WeightedAccumulator(params.min_fraction)
        try:
            calculate_on_data_set(
                roi, ds, frame, gate,
                inverse=params.inverse,
                accurate=params.accurate,
                calculation=accumulator,
                granularity=params.granularity,
            )
        except MemoryError:
            logger.error(
                "Out of memory analyzing ROI %r on %s (accurate=%s); retry in fast mode",
                roi.name, ds.dim_zyx, params.accurate,
            )
            raise
        results.append(accumulator.result(roi.name, frame, gate))

    close(update)
    return results


def analyze_rois(
    rois: Sequence[Roi],
    ds: DataSet,
    params: Optional[AnalysisParamsDTO] = None,
    update: UpdateFunc = null_update,
) -> Dict[str, List[RoiStatistics]]:
    """Run ``analyze_roi`` for each ROI, stopping when ``update`` asks to."""
    out: Dict[str, List[RoiStatistics]] = {}
    for i, roi in enumerate(rois):
        if not update(f"ROI {i + 1} of {len(rois)}", i / max(1, len(rois))):
            break
        out[roi.name] = analyze_roi(roi, ds, params)
    close(update)
    return out


def _select(requested: Optional[Sequence[int]], available: int, what: str) -> List[int]:
    if requested is None:
        return list(range(available))
    for idx in requested:
        if not 0 <= idx < available:
            raise ValueError(f"{what} {idx} out of range [0, {available})")
    return list(requested)


__all__ = ["RoiStatistics", "WeightedAccumulator", "analyze_roi", "analyze_rois"]
