"""nn — Layers, optimizer and persistence for nodegrad."""

from .modules import Layer, Linear, Conv2d
from .optim import Optimizer, SGD
from .state import (
    get_parameters, get_state_dict, load_state_dict, save_model_state, load_model_state,
)

__all__ = [
    'Layer', 'Linear', 'Conv2d',
    'Optimizer', 'SGD',
    'get_parameters', 'get_state_dict', 'load_state_dict',
    'save_model_state', 'load_model_state',
]
