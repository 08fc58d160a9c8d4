"""
Scalar — a single tracked float in a reverse-mode autodiff graph.

Every arithmetic op returns a new Scalar that records its operands and the
local partial derivative with respect to each of them. backward() walks the
graph once in reverse topological order and applies the chain rule.
"""

import logging
import math
import numbers

from .errors import NumericDomainError

logger = logging.getLogger(__name__)


def _ensure_scalar(other):
    """Wrap Python numbers as constant leaves; None for anything else."""
    if isinstance(other, Scalar):
        return other
    if isinstance(other, numbers.Real):
        return Scalar(other)
    return None


class Scalar:
    """A float plus its producing op, operands and local gradients.

    Leaves (parameters, inputs, constants) have no operands. Scalars hash by
    identity so a node can key the per-pass gradient table in backward().
    """

    def __init__(self, data=0.0, *, _op='', _inputs=(), _local_grads=()):
        self.data = float(data)
        self.grad = 0.0
        self._op = _op
        self._inputs = _inputs
        self._local_grads = _local_grads

    # --- Properties ---

    @property
    def op(self):
        return self._op

    @property
    def inputs(self):
        return self._inputs

    def is_leaf(self):
        return not self._inputs

    def item(self):
        return self.data

    def zero_grad(self):
        self.grad = 0.0

    # --- Internal helpers ---

    @staticmethod
    def _make_result(data, op, inputs, local_grads):
        return Scalar(data, _op=op, _inputs=inputs, _local_grads=local_grads)

    # --- Arithmetic ---

    def __add__(self, other):
        other = _ensure_scalar(other)
        if other is None:
            return NotImplemented
        return self._make_result(self.data + other.data, 'ADD', (self, other), (1.0, 1.0))

    def __radd__(self, other):
        return self.__add__(other)

    def __sub__(self, other):
        other = _ensure_scalar(other)
        if other is None:
            return NotImplemented
        return self._make_result(self.data - other.data, 'SUB', (self, other), (1.0, -1.0))

    def __rsub__(self, other):
        other = _ensure_scalar(other)
        if other is None:
            return NotImplemented
        return other.__sub__(self)

    def __mul__(self, other):
        other = _ensure_scalar(other)
        if other is None:
            return NotImplemented
        return self._make_result(self.data * other.data, 'MUL', (self, other),
                                 (other.data, self.data))

    def __rmul__(self, other):
        return self.__mul__(other)

    def __truediv__(self, other):
        other = _ensure_scalar(other)
        if other is None:
            return NotImplemented
        if other.data == 0.0:
            raise NumericDomainError(f'division by zero: {self.data} / 0')
        inv = 1.0 / other.data
        return self._make_result(self.data * inv, 'FDIV', (self, other),
                                 (inv, -self.data * inv * inv))

    def __rtruediv__(self, other):
        other = _ensure_scalar(other)
        if other is None:
            return NotImplemented
        return other.__truediv__(self)

    def __neg__(self):
        return self._make_result(-self.data, 'NEG', (self,), (-1.0,))

    # --- Unary functions ---

    def exp(self):
        try:
            out = math.exp(self.data)
        except OverflowError:
            raise NumericDomainError(f'exp overflow for {self.data}') from None
        return self._make_result(out, 'EXP', (self,), (out,))

    def log(self):
        if self.data <= 0.0:
            raise NumericDomainError(f'log of non-positive value {self.data}')
        return self._make_result(math.log(self.data), 'LOG', (self,), (1.0 / self.data,))

    def relu(self):
        if self.data > 0.0:
            return self._make_result(self.data, 'RELU', (self,), (1.0,))
        return self._make_result(0.0, 'RELU', (self,), (0.0,))

    def sigmoid(self):
        if self.data >= 0.0:
            s = 1.0 / (1.0 + math.exp(-self.data))
        else:
            e = math.exp(self.data)
            s = e / (1.0 + e)
        return self._make_result(s, 'SIGMOID', (self,), (s * (1.0 - s),))

    def tanh(self):
        t = math.tanh(self.data)
        return self._make_result(t, 'TANH', (self,), (1.0 - t * t,))

    def square(self):
        return self._make_result(self.data * self.data, 'SQUARE', (self,), (2.0 * self.data,))

    def maximum(self, other):
        """Greater of self and other; the gradient follows the winner.

        Ties go to self, the first operand, which is the usual max-pool
        subgradient.
        """
        wrapped = _ensure_scalar(other)
        if wrapped is None:
            raise TypeError(f'Cannot take max of Scalar and {type(other)}')
        other = wrapped
        if self.data >= other.data:
            return self._make_result(self.data, 'MAX', (self, other), (1.0, 0.0))
        return self._make_result(other.data, 'MAX', (self, other), (0.0, 1.0))

    def max(self, other):
        return self.maximum(other)

    # --- Autodiff ---

    def _topological_order(self):
        """Post-order over the graph rooted at self, iterative so deep fold
        chains (long sums) do not hit the recursion limit."""
        order = []
        visited = set()
        stack = [(self, False)]
        while stack:
            node, expanded = stack.pop()
            if expanded:
                order.append(node)
                continue
            if node in visited:
                continue
            visited.add(node)
            stack.append((node, True))
            for inp in node._inputs:
                if inp not in visited:
                    stack.append((inp, False))
        return order

    def backward(self):
        """Accumulate d(self)/d(node) into node.grad for every ancestor.

        Contributions for this pass are collected in a local table and added
        to .grad once per node, so repeated passes accumulate without
        re-propagating gradient left over from earlier passes.
        """
        order = self._topological_order()
        logger.debug('backward pass over %d nodes', len(order))
        pending = {self: 1.0}
        for node in reversed(order):
            g = pending.pop(node, 0.0)
            node.grad += g
            if g == 0.0:
                continue
            for inp, local in zip(node._inputs, node._local_grads):
                pending[inp] = pending.get(inp, 0.0) + local * g

    # --- Representation ---

    def __float__(self):
        return self.data

    def __repr__(self):
        if self._op:
            return f'Scalar({self.data}, grad={self.grad}, op={self._op})'
        return f'Scalar({self.data}, grad={self.grad})'
