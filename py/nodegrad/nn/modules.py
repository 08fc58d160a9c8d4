"""nn.modules — Layers owning learnable Tensors."""

import logging
import math

from ..errors import PersistenceError, ShapeMismatchError
from ..tensor import Tensor
from .optim import SGD

logger = logging.getLogger(__name__)


class Layer:
    """Owner of learnable Tensors.

    Only tensors passed to register() (directly or through a registered
    sub-layer) are trained by learn() and written by save(). Registration
    order is the persistence order. Parameter updates and randomize() work
    in place, so a registered tensor keeps its identity for the layer's
    lifetime; rebinding the attribute to a new Tensor would orphan it.
    """

    def __init__(self):
        self._registered = []   # (name, Tensor | Layer), in registration order

    def register(self, name, item):
        """Register a Tensor parameter or a sub-Layer; returns item."""
        if not isinstance(item, (Tensor, Layer)):
            raise TypeError(f'can only register Tensor or Layer, got {type(item)}')
        if any(n == name for n, _ in self._registered):
            raise ValueError(f'duplicate parameter name {name!r}')
        self._registered.append((name, item))
        return item

    # --- Parameter access ---

    def named_parameters(self, prefix=''):
        """Yield (dotted name, Tensor) for every parameter, sub-layers flattened."""
        for name, item in self._registered:
            full = f'{prefix}.{name}' if prefix else name
            if isinstance(item, Layer):
                yield from item.named_parameters(full)
            else:
                yield full, item

    def parameters(self):
        return [p for _, p in self.named_parameters()]

    def parameter_count(self):
        return len(self.parameters())

    def value_count(self):
        """Total number of floats across all parameters."""
        return sum(p.numel() for p in self.parameters())

    def for_parameters(self, fn):
        for p in self.parameters():
            fn(p)

    # --- Interface ---

    def randomize(self):
        raise NotImplementedError

    def forward(self, x):
        raise NotImplementedError

    def __call__(self, x):
        return self.forward(x)

    # --- Training ---

    def zero_grad(self):
        self.for_parameters(Tensor.zero_grad)

    def learn(self, lr):
        """One SGD step: p <- p - lr * p.grad for every parameter."""
        SGD(self.parameters(), lr=lr).step()

    # --- Persistence ---

    def save(self, stream):
        """Write every parameter value, one repr() per line, to a text stream."""
        for p in self.parameters():
            for v in p.numpy().ravel().tolist():
                stream.write(repr(v) + '\n')

    def load(self, stream):
        """Read values written by save(); nothing is applied unless all parse."""
        params = self.parameters()
        total = self.value_count()
        loaded = []
        count = 0
        for p in params:
            values = []
            for _ in range(p.numel()):
                line = stream.readline()
                if not line:
                    raise PersistenceError(
                        f'model stream ended after {count} of {total} values')
                try:
                    values.append(float(line))
                except ValueError as e:
                    raise PersistenceError(
                        f'malformed value {line.strip()!r} at position {count}') from e
                count += 1
            loaded.append(values)
        for p, values in zip(params, loaded):
            p.assign(values)


class Linear(Layer):
    """y = weight @ x + bias, for x a single (in_features, 1) column."""

    def __init__(self, in_features, out_features, rng=None):
        super().__init__()
        self.in_features = in_features
        self.out_features = out_features
        self.weight = self.register('weight', Tensor(out_features, in_features))
        self.bias = self.register('bias', Tensor(out_features, 1))
        self.randomize(rng=rng)
        logger.debug('Linear(%d, %d) created', in_features, out_features)

    def randomize(self, rng=None):
        # Xavier/Glorot: scale by 1/sqrt(fan_in)
        scale = 1.0 / math.sqrt(self.in_features)
        self.weight.randomize(scale, rng=rng)
        self.bias.randomize(scale, rng=rng)

    def forward(self, x):
        return self.weight @ x + self.bias


class Conv2d(Layer):
    """Multi-channel valid 2-D convolution.

    Holds out_layers square filters and out_layers 1x1 biases. Output
    channel o is the sum over every input channel i of
    ``input[i].convo2d(filters[o], bias[o])``, so the bias is added once per
    input channel.
    """

    def __init__(self, rows, cols, kernel, in_layers=1, out_layers=1, rng=None):
        super().__init__()
        if kernel > rows or kernel > cols:
            raise ShapeMismatchError(f'kernel {kernel} does not fit in input ({rows}, {cols})')
        self.rows = rows
        self.cols = cols
        self.kernel = kernel
        self.in_layers = in_layers
        self.out_layers = out_layers
        self.filters = [self.register(f'filters.{i}', Tensor(kernel, kernel))
                        for i in range(out_layers)]
        self.bias = [self.register(f'bias.{i}', Tensor(1, 1)) for i in range(out_layers)]
        self.randomize(rng=rng)
        logger.debug('Conv2d(%dx%d, kernel=%d, %d -> %d) created',
                     rows, cols, kernel, in_layers, out_layers)

    @property
    def out_shape(self):
        return (1 + self.rows - self.kernel, 1 + self.cols - self.kernel)

    def randomize(self, rng=None):
        scale = math.sqrt(1.0 / (self.in_layers * self.kernel * self.kernel))
        for f in self.filters:
            f.randomize(scale, rng=rng)
        for b in self.bias:
            b.randomize(scale, rng=rng)

    def forward(self, x):
        """x: one Tensor or a sequence of in_layers Tensors of shape (rows, cols).

        Returns a list of out_layers Tensors of shape out_shape.
        """
        inputs = [x] if isinstance(x, Tensor) else list(x)
        if len(inputs) != self.in_layers:
            raise ShapeMismatchError(
                f'Conv2d expected {self.in_layers} input layers, got {len(inputs)}')
        for inp in inputs:
            if inp.shape != (self.rows, self.cols):
                raise ShapeMismatchError(
                    f'Conv2d expected input shape {(self.rows, self.cols)}, got {inp.shape}')
        out = []
        for f, b in zip(self.filters, self.bias):
            acc = None
            for inp in inputs:
                term = inp.convo2d(f, b)
                acc = term if acc is None else acc + term
            out.append(acc)
        return out
