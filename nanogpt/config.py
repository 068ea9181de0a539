"""
Configuration for the nano inference engine.

The defaults describe a tiny model (4 layers, 128-dim hidden state) that runs
comfortably on a CPU. CONFIG is the plain dictionary callers edit or override;
ModelConfig is the validated, immutable record the engine is built from.
"""

from dataclasses import dataclass, fields, asdict

from .errors import InvalidArgument


CONFIG = {
    # ==========================================================================
    # MODEL ARCHITECTURE
    # ==========================================================================

    # Number of entries in the vocabulary, special tokens and filler included
    "vocab_size": 2048,

    # Maximum number of trailing tokens the model conditions on
    "context_length": 128,

    # Size of the vector representing each position
    "hidden_dim": 128,

    # Number of attention heads
    # hidden_dim must be divisible by num_heads
    "num_heads": 8,

    # Number of transformer blocks
    "num_layers": 4,

    # The FFN expands to ffn_multiplier * hidden_dim then projects back
    "ffn_multiplier": 4,

    # ==========================================================================
    # NUMERICS
    # ==========================================================================

    # Added to the variance in every normalization
    "eps": 1e-5,

    # "multi_head": causal scaled dot-product attention
    # "mean": causal running mean of the normalized inputs, no projection
    "attention": "multi_head",

    # "vectorized": whole-sequence numpy operations
    # "reference": explicit per-position loops
    "backend": "vectorized",

    # "he": normal with std sqrt(2 / fan_in)
    # "xavier": uniform in +-sqrt(6 / (fan_in + fan_out))
    "init": "he",

    # Element type of every parameter and activation buffer
    "dtype": "float32",

    # ==========================================================================
    # GENERATION
    # ==========================================================================

    # When the working context overflows it is cut to this fraction
    # of context_length
    "truncate_ratio": 0.8,

    "max_new_tokens": 50,
    "temperature": 0.8,

    # None draws fresh entropy from the OS
    "seed": None,
}


ATTENTION_KINDS = ("multi_head", "mean")
BACKENDS = ("vectorized", "reference")
INIT_SCHEMES = ("he", "xavier")
DTYPES = ("float32", "float64")


@dataclass(frozen=True)
class ModelConfig:
    """Immutable model hyperparameters. Validated on construction."""

    vocab_size: int = CONFIG["vocab_size"]
    context_length: int = CONFIG["context_length"]
    hidden_dim: int = CONFIG["hidden_dim"]
    num_heads: int = CONFIG["num_heads"]
    num_layers: int = CONFIG["num_layers"]
    ffn_multiplier: int = CONFIG["ffn_multiplier"]
    eps: float = CONFIG["eps"]
    attention: str = CONFIG["attention"]
    backend: str = CONFIG["backend"]
    init: str = CONFIG["init"]
    dtype: str = CONFIG["dtype"]
    truncate_ratio: float = CONFIG["truncate_ratio"]

    def __post_init__(self):
        for name in ("vocab_size", "context_length", "hidden_dim",
                     "num_heads", "num_layers", "ffn_multiplier"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise InvalidArgument(f"{name} must be a positive integer, got {value!r}")

        if self.hidden_dim % self.num_heads != 0:
            raise InvalidArgument(
                f"hidden_dim ({self.hidden_dim}) must be divisible by "
                f"num_heads ({self.num_heads})"
            )
        if not self.eps > 0:
            raise InvalidArgument(f"eps must be positive, got {self.eps!r}")
        if self.attention not in ATTENTION_KINDS:
            raise InvalidArgument(f"attention must be one of {ATTENTION_KINDS}, got {self.attention!r}")
        if self.backend not in BACKENDS:
            raise InvalidArgument(f"backend must be one of {BACKENDS}, got {self.backend!r}")
        if self.init not in INIT_SCHEMES:
            raise InvalidArgument(f"init must be one of {INIT_SCHEMES}, got {self.init!r}")
        if self.dtype not in DTYPES:
            raise InvalidArgument(f"dtype must be one of {DTYPES}, got {self.dtype!r}")

        # The truncated context must keep at least one token
        if not 0 < self.truncate_ratio <= 1 or int(self.context_length * self.truncate_ratio) < 1:
            raise InvalidArgument(
                f"truncate_ratio must be in (0, 1] and keep at least one token, "
                f"got {self.truncate_ratio!r}"
            )

    @property
    def head_dim(self):
        return self.hidden_dim // self.num_heads

    @property
    def ffn_dim(self):
        return self.ffn_multiplier * self.hidden_dim

    @property
    def truncated_length(self):
        """Context size kept after the generation context overflows."""
        return int(self.context_length * self.truncate_ratio)

    @classmethod
    def from_dict(cls, mapping):
        """Build a config from a CONFIG-style dictionary, ignoring generation keys."""
        names = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in mapping.items() if key in names})

    def to_dict(self):
        return asdict(self)
