"""
Parameter Store

All weights of the model live in one ParameterSet. Per-layer tensors are
stacked along a leading layer axis, so the whole model is a fixed number of
arrays whose shapes depend only on the ModelConfig:

    token_embedding     (vocab_size, hidden_dim)
    position_embedding  (context_length, hidden_dim)     sinusoidal, fixed
    qkv                 (num_layers, hidden_dim, 3 * hidden_dim)
    attn_out            (num_layers, hidden_dim, hidden_dim)
    ffn_up              (num_layers, hidden_dim, ffn_dim)
    ffn_down            (num_layers, ffn_dim, hidden_dim)
    ln1_gamma/ln1_beta  (num_layers, hidden_dim)          ones / zeros
    ln2_gamma/ln2_beta  (num_layers, hidden_dim)          ones / zeros
    final_gamma/beta    (hidden_dim,)                     ones / zeros
    lm_head             (hidden_dim, vocab_size)

Every array is marked read-only once the set is built. Nothing in the
engine writes to parameters after initialization.

Random matrices are drawn from an injected numpy Generator so that one seed
reproduces the same model exactly:
    he:      Normal(0, sqrt(2 / fan_in))
    xavier:  Uniform(-sqrt(6 / (fan_in + fan_out)), +sqrt(6 / (fan_in + fan_out)))
"""

import logging
from collections import namedtuple

import numpy as np

from .errors import InvalidArgument
from .layers import sinusoidal_table


logger = logging.getLogger(__name__)


LayerParams = namedtuple("LayerParams", [
    "qkv", "attn_out", "ffn_up", "ffn_down",
    "ln1_gamma", "ln1_beta", "ln2_gamma", "ln2_beta",
])


def expected_shapes(config):
    """Shape of every array in a ParameterSet for config."""
    V, C, H = config.vocab_size, config.context_length, config.hidden_dim
    N, F = config.num_layers, config.ffn_dim
    return {
        "token_embedding": (V, H),
        "position_embedding": (C, H),
        "qkv": (N, H, 3 * H),
        "attn_out": (N, H, H),
        "ffn_up": (N, H, F),
        "ffn_down": (N, F, H),
        "ln1_gamma": (N, H),
        "ln1_beta": (N, H),
        "ln2_gamma": (N, H),
        "ln2_beta": (N, H),
        "final_gamma": (H,),
        "final_beta": (H,),
        "lm_head": (H, V),
    }


class ParameterSet:
    """
    Immutable collection of model weights.

    Args:
        config: ModelConfig the arrays must conform to
        arrays: Mapping from name to array; must contain exactly the names
                of expected_shapes(config) with matching shapes

    Raises:
        InvalidArgument: a name is missing or unknown, or a shape is wrong
    """

    def __init__(self, config, arrays):
        shapes = expected_shapes(config)

        missing = sorted(set(shapes) - set(arrays))
        unknown = sorted(set(arrays) - set(shapes))
        if missing or unknown:
            raise InvalidArgument(f"parameter names mismatch: missing={missing} unknown={unknown}")

        dtype = np.dtype(config.dtype)
        self.config = config
        self._arrays = {}
        for name, shape in shapes.items():
            array = np.array(arrays[name], dtype=dtype)
            if array.shape != shape:
                raise InvalidArgument(f"{name} must have shape {shape}, got {array.shape}")
            if not np.all(np.isfinite(array)):
                raise InvalidArgument(f"{name} contains non-finite values")
            array.flags.writeable = False
            self._arrays[name] = array

    def __getattr__(self, name):
        arrays = self.__dict__.get("_arrays", {})
        if name in arrays:
            return arrays[name]
        raise AttributeError(name)

    def __iter__(self):
        return iter(self._arrays.items())

    def layer(self, index):
        """Read-only view of the parameters of one transformer block."""
        if not 0 <= index < self.config.num_layers:
            raise IndexError(f"layer {index} out of range for {self.config.num_layers} layers")
        return LayerParams(*(self._arrays[name][index] for name in LayerParams._fields))

    def count(self):
        """Total number of scalar parameters, the fixed position table included."""
        return sum(array.size for array in self._arrays.values())

    def nbytes(self):
        return sum(array.nbytes for array in self._arrays.values())


def _random_matrix(rng, shape, scheme):
    # The last two axes are (fan_in, fan_out); a leading axis indexes layers
    fan_in, fan_out = shape[-2], shape[-1]

    if scheme == "xavier":
        limit = np.sqrt(6.0 / (fan_in + fan_out))
        return rng.uniform(-limit, limit, size=shape)

    return rng.standard_normal(shape) * np.sqrt(2.0 / fan_in)


def initialize_parameters(config, rng):
    """
    Build a freshly initialized ParameterSet.

    Args:
        config: ModelConfig
        rng: numpy.random.Generator used for every random matrix

    Returns:
        ParameterSet
    """
    shapes = expected_shapes(config)
    N, H = config.num_layers, config.hidden_dim

    arrays = {}

    # Draw order is fixed so a seed always produces the same weights
    for name in ("token_embedding", "qkv", "attn_out", "ffn_up", "ffn_down", "lm_head"):
        arrays[name] = _random_matrix(rng, shapes[name], config.init)

    arrays["position_embedding"] = sinusoidal_table(config.context_length, H)

    arrays["ln1_gamma"] = np.ones((N, H))
    arrays["ln1_beta"] = np.zeros((N, H))
    arrays["ln2_gamma"] = np.ones((N, H))
    arrays["ln2_beta"] = np.zeros((N, H))
    arrays["final_gamma"] = np.ones(H)
    arrays["final_beta"] = np.zeros(H)

    params = ParameterSet(config, arrays)
    logger.info(
        "Initialized %d parameters (%.1f MB, %s, %s init)",
        params.count(), params.nbytes() / 1024 / 1024, config.dtype, config.init,
    )
    return params
