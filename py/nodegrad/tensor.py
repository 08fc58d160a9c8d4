"""
Tensor class for nodegrad — a fixed-shape 2-D grid of tracked Scalars.

Every tensor op is composed from Scalar ops, so gradients reach the
elements of every operand through the ordinary scalar backward pass.
Shapes are fixed at construction; no op broadcasts one tensor over another.
"""

import logging
import math
import numbers
import os

import numpy as np

from .array import Array, _check_index
from .errors import NumericDomainError, ShapeMismatchError
from .scalar import Scalar

logger = logging.getLogger(__name__)


def _seed_from_env():
    seed = os.environ.get('NODEGRAD_SEED')
    return int(seed) if seed else None


# Package default normal source; NODEGRAD_SEED pins it for reproducible runs.
_default_rng = np.random.default_rng(_seed_from_env())


def _as_scalar(value):
    if isinstance(value, Scalar):
        return value
    if isinstance(value, numbers.Real):
        return Scalar(value)
    raise TypeError(f'Cannot convert {type(value)} to Scalar')


class Tensor:
    """Row-major (rows, cols) array of Scalar nodes.

    Parameters persist as leaves across training steps: ``t -= delta``
    (delta an Array) replaces every element with a fresh leaf holding
    ``old - delta`` and drops the old graph history ("detach on update").
    """

    def __init__(self, rows, cols, *, _store=None):
        """Create a rows x cols tensor of independent zero-valued leaves."""
        if rows <= 0 or cols <= 0:
            raise ShapeMismatchError(f'Tensor dimensions must be positive, got ({rows}, {cols})')
        self._shape = (rows, cols)
        if _store is None:
            self._store = [Scalar(0.0) for _ in range(rows * cols)]
        else:
            if len(_store) != rows * cols:
                raise ShapeMismatchError(
                    f'cannot build shape ({rows}, {cols}) from {len(_store)} elements')
            self._store = _store

    # --- Properties ---

    @property
    def shape(self):
        return self._shape

    @property
    def rows(self):
        return self._shape[0]

    @property
    def cols(self):
        return self._shape[1]

    @property
    def grad(self):
        """Snapshot of the accumulated gradient of every element."""
        rows, cols = self._shape
        return Array(rows, cols, [n.grad for n in self._store])

    def numel(self):
        return len(self._store)

    def zero_grad(self):
        for n in self._store:
            n.zero_grad()

    # --- Element access ---

    def __getitem__(self, idx):
        r, c = _check_index(idx, self._shape)
        return self._store[r * self._shape[1] + c]

    def __setitem__(self, idx, value):
        r, c = _check_index(idx, self._shape)
        self._store[r * self._shape[1] + c] = _as_scalar(value)

    # --- Static constructors ---

    @staticmethod
    def zeros(rows, cols):
        return Tensor(rows, cols)

    @staticmethod
    def full(rows, cols, fill_value):
        t = Tensor(rows, cols)
        t.fill(fill_value)
        return t

    @staticmethod
    def randn(rows, cols, scale=1.0, rng=None):
        t = Tensor(rows, cols)
        t.randomize(scale, rng=rng)
        return t

    @staticmethod
    def from_numpy(data):
        """Build leaves from a 2-D array-like; 1-D input becomes a column."""
        arr = np.asarray(data, dtype=np.float64)
        if arr.ndim == 1:
            arr = arr.reshape(-1, 1)
        if arr.ndim != 2:
            raise ShapeMismatchError(f'Tensor needs 2-D data, got shape {arr.shape}')
        rows, cols = arr.shape
        return Tensor(rows, cols, _store=[Scalar(v) for v in arr.ravel().tolist()])

    @staticmethod
    def manual_seed(seed):
        global _default_rng
        _default_rng = np.random.default_rng(seed)

    # --- Filling ---

    def randomize(self, scale=1.0, rng=None):
        """Refill with N(0, 1) draws times scale, as fresh leaves."""
        rng = rng if rng is not None else _default_rng
        draws = rng.standard_normal(self.numel()) * scale
        self._store = [Scalar(v) for v in draws.tolist()]
        logger.debug('randomized %s tensor with scale %g', self._shape, scale)
        return self

    def assign(self, data):
        """Replace every element with a fresh leaf taken from data.

        data is any array-like with the same element count (2-D data must
        also match the shape). Gradients start over at zero.
        """
        arr = np.asarray(data, dtype=np.float64)
        if arr.size != self.numel() or (arr.ndim == 2 and arr.shape != self._shape):
            raise ShapeMismatchError(f'cannot assign data of shape {arr.shape} to {self._shape}')
        self._store = [Scalar(v) for v in arr.ravel().tolist()]
        return self

    def zero(self):
        return self.fill(0.0)

    def fill(self, value):
        value = float(value)
        self._store = [Scalar(value) for _ in range(self.numel())]
        return self

    # --- Internal helpers ---

    def _make_result(self, shape, store):
        return Tensor(shape[0], shape[1], _store=store)

    def _check_same_shape(self, other, op_name):
        if self._shape != other._shape:
            raise ShapeMismatchError(
                f'{op_name} needs identical shapes, got {self._shape} and {other._shape}')

    def _elementwise(self, other, fn, op_name):
        """Apply fn pairwise with a same-shape Tensor, or against one scalar."""
        if isinstance(other, Tensor):
            self._check_same_shape(other, op_name)
            store = [fn(a, b) for a, b in zip(self._store, other._store)]
        else:
            s = _as_scalar(other)
            store = [fn(a, s) for a in self._store]
        return self._make_result(self._shape, store)

    # --- Element-wise arithmetic ---

    def __add__(self, other):
        return self._elementwise(other, lambda a, b: a + b, 'add')

    def __radd__(self, other):
        return self._elementwise(other, lambda a, b: b + a, 'add')

    def __sub__(self, other):
        return self._elementwise(other, lambda a, b: a - b, 'sub')

    def __rsub__(self, other):
        return self._elementwise(other, lambda a, b: b - a, 'sub')

    def __mul__(self, other):
        return self._elementwise(other, lambda a, b: a * b, 'elmult')

    def __rmul__(self, other):
        return self._elementwise(other, lambda a, b: b * a, 'elmult')

    def __truediv__(self, other):
        return self._elementwise(other, lambda a, b: a / b, 'div')

    def __neg__(self):
        return self.apply(lambda a: -a)

    def elmult(self, w):
        """Hadamard product with a tensor of the same shape."""
        if not isinstance(w, Tensor):
            raise TypeError(f'Expected Tensor, got {type(w)}')
        return self._elementwise(w, lambda a, b: a * b, 'elmult')

    def __isub__(self, delta):
        if not isinstance(delta, Array):
            return NotImplemented
        if delta.shape != self._shape:
            raise ShapeMismatchError(f'cannot subtract shape {delta.shape} from {self._shape}')
        values = delta.numpy().ravel().tolist()
        self._store = [Scalar(n.data - d) for n, d in zip(self._store, values)]
        return self

    # --- Functions ---

    def apply(self, fn):
        """Map fn (Scalar -> Scalar) over every element."""
        return self._make_result(self._shape, [fn(n) for n in self._store])

    def exp(self):
        return self.apply(Scalar.exp)

    def log(self):
        return self.apply(Scalar.log)

    def relu(self):
        return self.apply(Scalar.relu)

    def sigmoid(self):
        return self.apply(Scalar.sigmoid)

    def tanh(self):
        return self.apply(Scalar.tanh)

    def square(self):
        return self.apply(Scalar.square)

    # --- Matmul ---

    def dot(self, w):
        """(R, K) @ (K, N) -> (R, N) by explicit multiply-accumulate."""
        if not isinstance(w, Tensor):
            raise TypeError(f'Expected Tensor, got {type(w)}')
        rows, inner = self._shape
        w_rows, cols = w._shape
        if inner != w_rows:
            raise ShapeMismatchError(f'matmul inner dimensions differ: {self._shape} @ {w._shape}')
        store = []
        for i in range(rows):
            row = self._store[i * inner:(i + 1) * inner]
            for j in range(cols):
                acc = row[0] * w._store[j]
                for k in range(1, inner):
                    acc = acc + row[k] * w._store[k * cols + j]
                store.append(acc)
        return self._make_result((rows, cols), store)

    def matmul(self, other):
        return self.dot(other)

    def __matmul__(self, other):
        return self.dot(other)

    # --- Movement ---

    def reshape(self, rows, cols):
        if rows * cols != self.numel():
            raise ShapeMismatchError(f'cannot reshape {self._shape} to ({rows}, {cols})')
        return self._make_result((rows, cols), list(self._store))

    def flat_view_row(self):
        """All elements as one (R*C, 1) column, row-major."""
        return self.reshape(self.numel(), 1)

    def flat_view_col(self):
        """All elements as one (1, R*C) row, row-major."""
        return self.reshape(1, self.numel())

    def transpose(self):
        rows, cols = self._shape
        store = [self._store[r * cols + c] for c in range(cols) for r in range(rows)]
        return self._make_result((cols, rows), store)

    @property
    def T(self):
        return self.transpose()

    # --- Reductions ---

    def sum(self):
        acc = self._store[0]
        for n in self._store[1:]:
            acc = acc + n
        return acc

    def mean(self):
        return self.sum() / float(self.numel())

    def mean_std(self):
        """(mean, sample std) of the raw values; not tracked.

        Corrected two-pass algorithm: the second pass subtracts the squared
        residual sum, which cancels the rounding error left in the mean.
        """
        n = self.numel()
        if n < 2:
            raise NumericDomainError('sample standard deviation needs at least two elements')
        values = [v.data for v in self._store]
        mean = sum(values) / n
        diff_sum = 0.0
        diff2_sum = 0.0
        for v in values:
            d = v - mean
            diff_sum += d
            diff2_sum += d * d
        var = (diff2_sum - diff_sum * diff_sum / n) / (n - 1)
        return mean, math.sqrt(max(var, 0.0))

    def norm(self):
        """Divide every element by the sum of ALL elements (not per row)."""
        total = self.sum()
        return self.apply(lambda v: v / total)

    def log_softmax(self):
        """Log-softmax over ALL elements (not per row or column).

        Subtracts the running max before exponentiating so large scores do
        not overflow; the max stays in the graph, so its gradient is routed
        through the Scalar max rule.
        """
        top = self._store[0]
        for n in self._store[1:]:
            top = top.maximum(n)
        total = (self._store[0] - top).exp()
        for n in self._store[1:]:
            total = total + (n - top).exp()
        logsum = total.log()
        return self.apply(lambda v: v - top - logsum)

    def _extreme_row_of_column(self, col, sign):
        rows, cols = self._shape
        _check_index((0, col), self._shape)
        best_row = 0
        best = sign * self._store[col].data
        for r in range(1, rows):
            val = sign * self._store[r * cols + col].data
            if val > best:
                best = val
                best_row = r
        return best_row

    def max_value_index_of_column(self, col):
        """Row holding the largest raw value in col; earliest row wins ties."""
        return self._extreme_row_of_column(col, 1.0)

    def min_value_index_of_column(self, col):
        """Row holding the smallest raw value in col; earliest row wins ties."""
        return self._extreme_row_of_column(col, -1.0)

    # --- Convolution / pooling ---

    def convo2d(self, weights, bias):
        """Valid 2-D convolution with a square KxK kernel plus a 1x1 bias.

        out[r, c] = sum(window(r, c) * weights) + bias, for an output of shape
        (1 + R - K, 1 + C - K). Input, weights and bias all receive gradient.
        """
        if not isinstance(weights, Tensor):
            raise TypeError(f'Expected Tensor weights, got {type(weights)}')
        k, k_cols = weights._shape
        if k != k_cols:
            raise ShapeMismatchError(f'convolution kernel must be square, got {weights._shape}')
        if isinstance(bias, Tensor):
            if bias._shape != (1, 1):
                raise ShapeMismatchError(f'convolution bias must be (1, 1), got {bias._shape}')
            b = bias._store[0]
        else:
            b = _as_scalar(bias)
        rows, cols = self._shape
        if k > rows or k > cols:
            raise ShapeMismatchError(f'kernel {k} does not fit in input {self._shape}')
        out_rows, out_cols = 1 + rows - k, 1 + cols - k
        w = weights._store
        store = []
        for r in range(out_rows):
            for c in range(out_cols):
                acc = None
                for kr in range(k):
                    base = (r + kr) * cols + c
                    for kc in range(k):
                        term = self._store[base + kc] * w[kr * k + kc]
                        acc = term if acc is None else acc + term
                store.append(acc + b)
        return self._make_result((out_rows, out_cols), store)

    def max2d(self, kernel):
        """Max over non-overlapping kernel x kernel blocks -> (R/K, C/K)."""
        rows, cols = self._shape
        if kernel <= 0 or rows % kernel or cols % kernel:
            raise ShapeMismatchError(f'pool kernel {kernel} does not divide shape {self._shape}')
        out_rows, out_cols = rows // kernel, cols // kernel
        store = []
        for r in range(out_rows):
            for c in range(out_cols):
                top = None
                for kr in range(kernel):
                    base = (r * kernel + kr) * cols + c * kernel
                    for kc in range(kernel):
                        n = self._store[base + kc]
                        top = n if top is None else top.maximum(n)
                store.append(top)
        return self._make_result((out_rows, out_cols), store)

    # --- Autodiff / values ---

    def backward(self):
        """Run the backward pass from a 1x1 tensor."""
        if self._shape != (1, 1):
            raise ShapeMismatchError(f'backward() needs a (1, 1) tensor, got {self._shape}')
        self._store[0].backward()

    def numpy(self):
        return np.array([n.data for n in self._store], dtype=np.float64).reshape(self._shape)

    def tolist(self):
        return self.numpy().tolist()

    def item(self):
        if self._shape != (1, 1):
            raise ShapeMismatchError(f'item() requires a (1, 1) tensor, got shape {self._shape}')
        return self._store[0].data

    def detach(self):
        return self._make_result(self._shape, [Scalar(n.data) for n in self._store])

    # --- Representation ---

    def __str__(self):
        rows, cols = self._shape
        lines = []
        for r in range(rows):
            lines.append(' '.join(str(n.data) for n in self._store[r * cols:(r + 1) * cols]))
        return '\n'.join(lines) + '\n'

    def __repr__(self):
        if self.numel() <= 16:
            return f'Tensor({self.tolist()}, shape={self._shape})'
        return f'Tensor(shape={self._shape})'

    def __len__(self):
        return self._shape[0]
