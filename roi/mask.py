"""
Copy-on-write storage for tri-state ROI masks.

Several ``MaskHandle`` objects may reference one buffer (an ROI and its
copies).  Reads go straight to the shared array through a read-only view;
the first write through a handle whose buffer has other owners clones it,
so edits to one ROI never leak into another.
"""

from __future__ import annotations

import weakref

import numpy as np

from config import MASK_INTERIOR


class _MaskBuffer:
    __slots__ = ("array", "owners")

    def __init__(self, array: np.ndarray) -> None:
        self.array = array
        self.owners = 1

    def drop(self) -> None:
        self.owners = max(0, self.owners - 1)


def _validate(array: np.ndarray) -> np.ndarray:
    arr = np.asarray(array)
    if arr.ndim == 2:
        arr = arr[np.newaxis, ...]
    if arr.ndim != 3:
        raise ValueError(f"Expected a 2D or 3D (z, y, x) mask, got shape={arr.shape}")
    if arr.size and (arr.min() < 0 or arr.max() > MASK_INTERIOR):
        raise ValueError("Mask values must be 0 (outside), 1 (boundary) or 2 (interior)")
    return arr.astype(np.uint8, copy=True)


class MaskHandle:
    """One owner's reference to a (possibly shared) mask buffer."""

    __slots__ = ("_buffer", "_release", "__weakref__")

    def __init__(self, array: np.ndarray) -> None:
        # _validate always hands back a private uint8 copy
        self._attach(_MaskBuffer(np.ascontiguousarray(_validate(array))))

    def _attach(self, buffer: _MaskBuffer) -> None:
        # ownership is given back on release() or when the handle is collected
        self._buffer = buffer
        self._release = weakref.finalize(self, buffer.drop)

    @property
    def array(self) -> np.ndarray:
        view = self._buffer.array.view()
        view.flags.writeable = False
        return view

    @property
    def shape(self):
        return self._buffer.array.shape

    @property
    def shared(self) -> bool:
        return self._buffer.owners > 1

    def share(self) -> "MaskHandle":
        """New handle on the same buffer; nothing is copied until someone writes."""
        handle = MaskHandle.__new__(MaskHandle)
        self._buffer.owners += 1
        handle._attach(self._buffer)
        return handle

    def writable(self) -> np.ndarray:
        """Array safe to mutate in place, cloned first if other owners exist."""
        if self._buffer.owners > 1:
            clone = _MaskBuffer(self._buffer.array.copy())
            self._release()
            self._attach(clone)
        return self._buffer.array

    def release(self) -> None:
        """Give up ownership; repeated calls are no-ops."""
        self._release()


__all__ = ["MaskHandle"]
