"""
Configuration constants for the ROI / coordinate-space engine.
All tolerances and classification parameters are centralized here.
"""

# ==========================================
# Numeric Tolerances
# ==========================================
EPSILON = 1e-5                    # Relative guard for threshold rounding
REAL_EQUAL_TOLERANCE = 1e-9       # Corner comparisons (degenerate boxes)
AXES_CLOSE_TOLERANCE = 1e-5       # axes_close() component tolerance

# ==========================================
# ROI Classification
# ==========================================
ROI_GRANULARITY = 4               # Sub-samples per axis in accurate mode (G^3 total)

# Mask cell values (tri-state, not boolean)
MASK_OUTSIDE = 0
MASK_BOUNDARY = 1
MASK_INTERIOR = 2

# Fraction reported for a boundary cell in fast classification
BOUNDARY_FRACTION = 0.5

# Voxels per z-slab batch in accurate mode (memory vs speed)
CLASSIFY_MAX_SAMPLES = 4_000_000

# ==========================================
# Mask Editing
# ==========================================
DEFAULT_PAINT_AREA = 0            # Half-width (cells) of a paint/erase brush

# ==========================================
# Progress Channel
# ==========================================
PROGRESS_INDETERMINATE = -1.0     # fraction < 0: pulse, no known completion
PROGRESS_CLOSE = 2.0              # fraction > 1: hide/close the indicator

# ==========================================
# Analysis
# ==========================================
ANALYSIS_ACCURATE = True          # Default mode for quantitative statistics
ANALYSIS_MIN_FRACTION = 0.0       # Voxels at or below this weight are dropped
