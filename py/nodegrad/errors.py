"""errors — Exception types raised by nodegrad.

Each error also derives from the builtin exception callers would naturally
catch for that failure (ValueError for shapes, IndexError for bounds, ...).
"""


class NodegradError(Exception):
    """Base class for all nodegrad errors."""


class ShapeMismatchError(NodegradError, ValueError):
    """Operand shapes violate the operation's required relationship."""


class NumericDomainError(NodegradError, ArithmeticError):
    """Division by zero, log of a non-positive value, or exp overflow."""


class PersistenceError(NodegradError, OSError):
    """A model file could not be written, replaced, or read back."""


class BoundsError(NodegradError, IndexError):
    """Element access outside the tensor's rows/columns."""
