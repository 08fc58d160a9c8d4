"""nn.state — State dicts and atomic model files for nodegrad layers."""

import io
import logging
import os

import numpy as np

from ..errors import PersistenceError, ShapeMismatchError
from ..tensor import Tensor

logger = logging.getLogger(__name__)


def get_parameters(layer):
    """All registered parameter Tensors of a layer, in registration order."""
    return layer.parameters()


def get_state_dict(layer, prefix=''):
    """Get a flat dict of name → Tensor for all parameters."""
    return dict(layer.named_parameters(prefix))


def load_state_dict(layer, state_dict, strict=True):
    """Load parameters from a state dict into a layer.

    Values may be Tensors or array-likes. Every entry is checked before any
    parameter is touched.
    """
    current = get_state_dict(layer)
    if strict:
        unexpected = [k for k in state_dict if k not in current]
        if unexpected:
            raise KeyError(f'Unexpected key: {unexpected[0]}')
        missing = [k for k in current if k not in state_dict]
        if missing:
            raise KeyError(f'Missing key: {missing[0]}')
    staged = []
    for key, val in state_dict.items():
        if key not in current:
            continue
        target = current[key]
        data = val.numpy() if isinstance(val, Tensor) else np.asarray(val, dtype=np.float64)
        if data.shape != target.shape:
            raise ShapeMismatchError(
                f'{key}: expected shape {target.shape}, got {data.shape}')
        staged.append((target, data))
    for target, data in staged:
        target.assign(data)


def _discard(path):
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning('could not remove temporary model file %s: %s', path, e)


def save_model_state(layer, path):
    """Save a layer's parameters to path without ever exposing a partial file.

    Values go to ``path + '.tmp'``, which is flushed and fsynced before it
    is renamed over path. A crash leaves either the old or the new file.
    """
    path = os.fspath(path)
    tmp_path = path + '.tmp'
    try:
        with open(tmp_path, 'w', encoding='utf-8') as f:
            layer.save(f)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except OSError as e:
        _discard(tmp_path)
        raise PersistenceError(f"Can't save model to file {path}: {e}") from e
    except Exception:
        _discard(tmp_path)
        raise
    logger.info('saved %d values to %s', layer.value_count(), path)


def load_model_state(layer, path):
    """Load parameters written by save_model_state.

    The file must hold exactly the layer's value count; on any failure the
    layer is left untouched.
    """
    path = os.fspath(path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            text = f.read()
    except OSError as e:
        raise PersistenceError(f"Can't read model state from file {path}: {e}") from e

    n_values = len(text.split())
    expected = layer.value_count()
    if n_values != expected:
        raise PersistenceError(
            f'model file {path} holds {n_values} values, expected {expected}')
    layer.load(io.StringIO(text))
    logger.info('loaded %d values from %s', expected, path)
