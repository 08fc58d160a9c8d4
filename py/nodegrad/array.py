"""
Array — a fixed-shape 2-D block of raw floats with no gradient tracking.

Used for gradient snapshots and the scaled deltas applied to weights.
"""

import numpy as np

from .errors import BoundsError, NumericDomainError, ShapeMismatchError


def _check_index(idx, shape):
    """Validate a (row, col) pair against shape; negative indices are rejected."""
    if not isinstance(idx, tuple) or len(idx) != 2:
        raise TypeError(f'expected a (row, col) index, got {idx!r}')
    r, c = idx
    rows, cols = shape
    if not (0 <= r < rows and 0 <= c < cols):
        raise BoundsError(f'index ({r}, {c}) out of range for shape {shape}')
    return r, c


class Array:
    """Row-major (rows, cols) array of float64 values."""

    def __init__(self, rows, cols, data=None):
        if rows <= 0 or cols <= 0:
            raise ShapeMismatchError(f'Array dimensions must be positive, got ({rows}, {cols})')
        if data is None:
            self._data = np.zeros((rows, cols), dtype=np.float64)
        else:
            arr = np.array(data, dtype=np.float64)
            if arr.size != rows * cols:
                raise ShapeMismatchError(
                    f'cannot fill shape ({rows}, {cols}) from {arr.size} values')
            self._data = arr.reshape(rows, cols)

    # --- Properties ---

    @property
    def shape(self):
        return self._data.shape

    @property
    def rows(self):
        return self._data.shape[0]

    @property
    def cols(self):
        return self._data.shape[1]

    def numel(self):
        return self._data.size

    def numpy(self):
        return self._data.copy()

    def tolist(self):
        return self._data.tolist()

    # --- Element access ---

    def __getitem__(self, idx):
        r, c = _check_index(idx, self.shape)
        return float(self._data[r, c])

    def __setitem__(self, idx, value):
        r, c = _check_index(idx, self.shape)
        self._data[r, c] = value

    # --- In-place arithmetic ---

    def __iadd__(self, other):
        if not isinstance(other, Array):
            raise TypeError(f'Cannot accumulate {type(other)} into Array')
        if other.shape != self.shape:
            raise ShapeMismatchError(f'cannot add shape {other.shape} into {self.shape}')
        self._data += other._data
        return self

    def __imul__(self, factor):
        self._data *= float(factor)
        return self

    def __itruediv__(self, factor):
        if float(factor) == 0.0:
            raise NumericDomainError('division of Array by zero')
        self._data /= float(factor)
        return self

    def __mul__(self, factor):
        out = Array(self.rows, self.cols, self._data)
        out *= factor
        return out

    def __rmul__(self, factor):
        return self.__mul__(factor)

    def __truediv__(self, factor):
        out = Array(self.rows, self.cols, self._data)
        out /= factor
        return out

    # --- Representation ---

    def __str__(self):
        return ''.join(' '.join(str(v) for v in row) + '\n' for row in self._data.tolist())

    def __repr__(self):
        if self.numel() <= 16:
            return f'Array({self.tolist()}, shape={self.shape})'
        return f'Array(shape={self.shape})'
