"""
Statistics built on ROI classification.
"""

from analysis.statistics import RoiStatistics, WeightedAccumulator, analyze_roi, analyze_rois

__all__ = ['RoiStatistics', 'WeightedAccumulator', 'analyze_roi', 'analyze_rois']
