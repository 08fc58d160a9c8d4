"""nn.optim — Plain gradient-descent optimizer for nodegrad parameters."""

from ..tensor import Tensor


class Optimizer:
    """Base optimizer class."""
    def __init__(self, params, lr=0.001):
        self.params = list(params)
        for p in self.params:
            if not isinstance(p, Tensor):
                raise TypeError(f'Optimizer expects Tensor parameters, got {type(p)}')
        self.lr = lr

    def zero_grad(self):
        for p in self.params:
            p.zero_grad()

    def step(self):
        raise NotImplementedError


class SGD(Optimizer):
    """Stochastic gradient descent: p <- p - lr * grad, no momentum.

    The update goes through ``Tensor.__isub__``, so every parameter comes
    out as a fresh leaf and the finished forward graph can be dropped.
    """
    def __init__(self, params, lr=0.01):
        super().__init__(params, lr)

    def step(self):
        for p in self.params:
            g = p.grad
            g *= self.lr
            p -= g
