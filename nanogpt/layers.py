"""
Core Layers for the Forward Pass

This module implements the stateless building blocks of a transformer:
- Linear: matrix multiplication by a fixed weight
- LayerNorm: per-position normalization with scale and shift
- Embedding: token id to vector lookup
- PositionalEncoding: adds a precomputed position table

Layers do not own their parameters. Each one wraps arrays that live in the
ParameterSet, so building a layer never copies or mutates weights, and the
same layer object can be applied to a whole sequence (x of shape (L, H))
or to a single position (x of shape (H,)).
"""

import operator

import numpy as np

from .errors import InvalidArgument


def as_token_id(value):
    """Exact integer value of a token id. Floats and other non-integers are rejected."""
    try:
        return operator.index(value)
    except TypeError:
        raise InvalidArgument(f"token ids must be integers, got {value!r}") from None


class Linear:
    """
    Fully Connected Layer without bias.

    Forward:
        y = x @ W

    Where:
        x: input of shape (..., in_features)
        W: weight matrix of shape (in_features, out_features)
        y: output of shape (..., out_features)
    """

    def __init__(self, weight):
        """
        Args:
            weight: Array of shape (in_features, out_features)
        """
        self.W = weight

    def forward(self, x):
        # Broadcasts over leading dimensions: (L, in) @ (in, out) -> (L, out)
        return x @ self.W


class LayerNorm:
    """
    Layer Normalization.

    Forward:
        y = gamma * (x - mean) / sqrt(var + eps) + beta

    Where mean and var are taken over the last axis, independently for every
    position. Before gamma/beta are applied each position has mean ~0 and
    standard deviation ~1.

    Constant inputs:
        A position whose values are all equal has zero variance. Its centered
        values are forced to exactly 0, so the output is exactly beta and no
        NaN or Inf can appear (rounding in the mean would otherwise leave a
        tiny residue that eps only partially suppresses).
    """

    def __init__(self, gamma, beta, eps=1e-5):
        """
        Args:
            gamma: Scale vector of shape (features,)
            beta: Shift vector of shape (features,)
            eps: Added to the variance before the square root
        """
        self.gamma = gamma
        self.beta = beta
        self.eps = eps

    def forward(self, x):
        """
        Args:
            x: Input of shape (..., features)

        Returns:
            Normalized output of the same shape
        """
        mean = np.mean(x, axis=-1, keepdims=True)
        centered = x - mean

        constant = np.all(x == x[..., :1], axis=-1, keepdims=True)
        centered = np.where(constant, 0, centered).astype(x.dtype, copy=False)

        var = np.mean(centered * centered, axis=-1, keepdims=True)
        x_norm = centered / np.sqrt(var + self.eps)

        return self.gamma * x_norm + self.beta


class Embedding:
    """
    Token Embedding Layer.

    Forward:
        y = weight[token_ids mod vocab_size]

    Ids outside [0, vocab_size) are reduced modulo the vocabulary size, so
    a lookup can never index past the table.
    """

    def __init__(self, weight):
        """
        Args:
            weight: Embedding table of shape (vocab_size, embed_dim)
        """
        self.weight = weight

    @property
    def vocab_size(self):
        return self.weight.shape[0]

    def forward(self, token_ids):
        """
        Args:
            token_ids: Integer id or array of ids, shape (L,)

        Returns:
            Embeddings of shape (L, embed_dim), or (embed_dim,) for a single id

        Raises:
            InvalidArgument: an id is not an integer
        """
        V = self.vocab_size
        if not np.iterable(token_ids):
            return self.weight[as_token_id(token_ids) % V]

        # Reduced as Python ints, so ids beyond the int64 range still work
        ids = np.array([as_token_id(t) % V for t in token_ids], dtype=np.int64)
        return self.weight[ids]


def sinusoidal_table(max_seq_len, embed_dim, dtype=np.float64):
    """
    Sinusoidal position table.

        angle(pos, d) = pos / 10000^(2 * d / embed_dim)
        PE(pos, d)    = sin(angle) for even d, cos(angle) for odd d

    Every dimension d uses its own index in the exponent.

    Args:
        max_seq_len: Number of positions
        embed_dim: Dimension of each position vector

    Returns:
        Array of shape (max_seq_len, embed_dim)
    """
    position = np.arange(max_seq_len, dtype=np.float64)[:, np.newaxis]
    dims = np.arange(embed_dim, dtype=np.float64)

    angle = position / np.power(10000.0, 2.0 * dims / embed_dim)

    table = np.where(dims % 2 == 0, np.sin(angle), np.cos(angle))
    return table.astype(dtype)


class PositionalEncoding:
    """
    Adds position information to token embeddings.

    Without it the transformer is permutation-invariant and cannot tell
    "the cat sat" from "sat the cat". The table is fixed, not learned.
    """

    def __init__(self, table):
        """
        Args:
            table: Precomputed encodings of shape (max_seq_len, embed_dim)
        """
        self.pe = table

    def forward(self, x):
        """
        Args:
            x: Embeddings of shape (seq_len, embed_dim)

        Returns:
            x plus the first seq_len rows of the table
        """
        return x + self.pe[:x.shape[0]]

    def at(self, position):
        """Encoding vector for one position."""
        return self.pe[position]


# =============================================================================
# DEMO
# =============================================================================

if __name__ == "__main__":
    rng = np.random.default_rng(0)

    print("LayerNorm...")
    ln = LayerNorm(np.ones(8), np.zeros(8))
    x = rng.standard_normal((3, 8))
    y = ln.forward(x)
    print(f"  Output mean per position (should be ~0): {np.mean(y, axis=-1)}")
    print(f"  Output std per position (should be ~1): {np.std(y, axis=-1)}")
    print(f"  Constant row: {ln.forward(np.full(8, 3.0))}")

    print("\nPositionalEncoding...")
    pe = PositionalEncoding(sinusoidal_table(10, 8))
    print(f"  Position 0 encoding: {pe.at(0)}")
    print(f"  Position 1 encoding: {pe.at(1)}")
