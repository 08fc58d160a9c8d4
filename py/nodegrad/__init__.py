"""nodegrad — scalar reverse-mode autodiff with fixed-shape 2-D tensors."""

import logging

from .errors import (
    NodegradError, ShapeMismatchError, NumericDomainError, PersistenceError, BoundsError,
)
from .scalar import Scalar
from .array import Array
from .tensor import Tensor

# Library logging: callers attach handlers.
logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    'Scalar', 'Array', 'Tensor',
    'NodegradError', 'ShapeMismatchError', 'NumericDomainError', 'PersistenceError',
    'BoundsError',
]
__version__ = '0.0.1'
