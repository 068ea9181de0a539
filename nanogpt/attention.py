"""
Causal Self-Attention

Two interchangeable mechanisms, both strictly causal (position p only sees
positions 0..p):

- MultiHeadAttention: scaled dot-product attention over num_heads heads
  sharing one combined QKV projection, followed by an output projection
- CausalMeanAttention: the running mean of the inputs, no parameters

The formula for multi-head attention:
    Attention(Q, K, V) = softmax(Q @ K^T / sqrt(d_k) + mask) @ V

Each mechanism exposes two paths over the same math:
    forward(x)            whole sequence at once, (L, H) -> (L, H)
    project(row)          per-position projection, cached by the caller
    attend(cache, p)      output for position p from cache[:p + 1]

The second path lets the reference engine process one position at a time.
"""

import numpy as np

from .activations import Softmax
from .layers import Linear


def create_causal_mask(seq_len, dtype=np.float64):
    """
    Create causal (autoregressive) attention mask.

    Args:
        seq_len: Length of the sequence

    Returns:
        Mask of shape (seq_len, seq_len)
        Lower triangular part is 0, upper triangular is -inf

    Example for seq_len=3:
        [[  0, -inf, -inf],
         [  0,    0, -inf],
         [  0,    0,    0]]
    """
    future = np.triu(np.ones((seq_len, seq_len), dtype=bool), k=1)

    # np.where avoids 0 * -inf = nan
    return np.where(future, -np.inf, 0.0).astype(dtype)


class MultiHeadAttention:
    """
    Multi-Head Causal Self-Attention.

    Architecture:
        1. Project input once with the combined weight: [Q | K | V] = x @ W_qkv
        2. Split Q, K, V into num_heads slices of head_dim columns
        3. For every head: softmax(Q_h @ K_h^T / sqrt(head_dim) + mask) @ V_h
        4. Concatenate the heads and project with W_o

    All heads are computed in one batched operation; heads never exchange
    information before the output projection.
    """

    def __init__(self, qkv_weight, out_weight, num_heads):
        """
        Args:
            qkv_weight: Combined projection of shape (embed_dim, 3 * embed_dim)
            out_weight: Output projection of shape (embed_dim, embed_dim)
            num_heads: Number of attention heads (must divide embed_dim)
        """
        self.W_qkv = Linear(qkv_weight)
        self.W_o = Linear(out_weight)

        self.embed_dim = out_weight.shape[0]
        self.num_heads = num_heads
        self.head_dim = self.embed_dim // num_heads

        # Scaling factor: 1/sqrt(d_k) keeps the variance of dot products at ~1
        self.scale = float(1.0 / np.sqrt(self.head_dim))

        self.softmax = Softmax()

    def _split_heads(self, x):
        # (L, H) -> (num_heads, L, head_dim)
        seq_len = x.shape[0]
        return x.reshape(seq_len, self.num_heads, self.head_dim).transpose(1, 0, 2)

    def forward(self, x, mask=None):
        """
        Args:
            x: Normalized hidden states, shape (seq_len, embed_dim)
            mask: Additive mask of shape (seq_len, seq_len); causal if None

        Returns:
            Attention output, shape (seq_len, embed_dim)
        """
        seq_len = x.shape[0]
        if mask is None:
            mask = create_causal_mask(seq_len, x.dtype)

        qkv = self.W_qkv.forward(x)  # (L, 3H)
        q, k, v = np.split(qkv, 3, axis=-1)

        Q = self._split_heads(q)  # (heads, L, head_dim)
        K = self._split_heads(k)
        V = self._split_heads(v)

        # (heads, L, head_dim) @ (heads, head_dim, L) -> (heads, L, L)
        scores = np.matmul(Q, K.transpose(0, 2, 1)) * self.scale
        scores = scores + mask.astype(scores.dtype, copy=False)

        # attn_weights[h, i, j] = how much position i attends to position j
        attn_weights = self.softmax.forward(scores, axis=-1)

        # (heads, L, L) @ (heads, L, head_dim) -> (heads, L, head_dim)
        heads = np.matmul(attn_weights, V)

        # Concatenate heads back to (L, H)
        concat = heads.transpose(1, 0, 2).reshape(seq_len, self.embed_dim)
        return self.W_o.forward(concat)

    def project(self, row):
        """QKV projection of one position, shape (3 * embed_dim,)."""
        return self.W_qkv.forward(row)

    def attend(self, cache, position):
        """
        Attention output for a single position.

        Args:
            cache: Projected rows from project(), shape (>= position + 1, 3H)
            position: Index of the query position

        Returns:
            Output vector of shape (embed_dim,)
        """
        H = self.embed_dim
        visible = cache[:position + 1]

        q = cache[position, :H]
        k = visible[:, H:2 * H]
        v = visible[:, 2 * H:]

        outputs = []
        for h in range(self.num_heads):
            cols = slice(h * self.head_dim, (h + 1) * self.head_dim)

            # (p + 1, head_dim) @ (head_dim,) -> (p + 1,)
            scores = (k[:, cols] @ q[cols]) * self.scale
            weights = self.softmax.forward(scores)
            outputs.append(weights @ v[:, cols])

        return self.W_o.forward(np.concatenate(outputs))


class CausalMeanAttention:
    """
    Causal Running-Mean Attention.

    Forward:
        y[p, d] = mean(x[0..p, d])

    Every position attends uniformly to itself and everything before it. It
    has no parameters and no output projection; it is the minimal mechanism
    that still mixes information across positions in causal order.
    """

    def forward(self, x, mask=None):
        """
        Args:
            x: Normalized hidden states, shape (seq_len, embed_dim)
            mask: Ignored; the mechanism is causal by construction

        Returns:
            Cumulative means, shape (seq_len, embed_dim)
        """
        counts = np.arange(1, x.shape[0] + 1, dtype=x.dtype)[:, np.newaxis]
        return np.cumsum(x, axis=0) / counts

    def project(self, row):
        return row

    def attend(self, cache, position):
        return np.sum(cache[:position + 1], axis=0) / (position + 1)


def build_attention(kind, qkv_weight, out_weight, num_heads):
    """Attention module for ModelConfig.attention."""
    if kind == "mean":
        return CausalMeanAttention()
    return MultiHeadAttention(qkv_weight, out_weight, num_heads)


# =============================================================================
# DEMO
# =============================================================================

if __name__ == "__main__":
    rng = np.random.default_rng(42)

    print("MultiHeadAttention...")
    embed_dim, num_heads = 8, 2
    mha = MultiHeadAttention(
        rng.standard_normal((embed_dim, 3 * embed_dim)) * 0.3,
        rng.standard_normal((embed_dim, embed_dim)) * 0.3,
        num_heads,
    )
    x = rng.standard_normal((5, embed_dim))
    y = mha.forward(x)
    print(f"  Input shape: {x.shape}")
    print(f"  Output shape: {y.shape}")

    cache = np.stack([mha.project(row) for row in x])
    y_seq = np.stack([mha.attend(cache, p) for p in range(len(x))])
    print(f"  Max difference to per-position path: {np.max(np.abs(y - y_seq)):.2e}")

    print("\nCausal mask:")
    print(create_causal_mask(4))
