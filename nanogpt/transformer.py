"""
Transformer Block and Forward Pass Engines

This module implements:
- TransformerBlock: one layer (norm -> attention -> residual -> norm -> FFN -> residual)
- ForwardEngine: the contract every forward pass implementation honors
- VectorizedEngine: processes the whole sequence with batched numpy operations
- ReferenceEngine: processes one position at a time with explicit loops

Both engines compute the same function:

    Token IDs ──► [Embedding + Position] ──► [TransformerBlock] x N
                                                     │
                                                     ▼
                    Logits ◄── [lm_head] ◄── [LayerNorm] (last position)

We use the Pre-LN variant: normalization is applied BEFORE each sub-layer,
and each sub-layer's output is added back to its input (residual).

There is no key/value cache. Every call recomputes the hidden state buffer
for the whole (trailing) context from scratch.
"""

import logging
from abc import ABC, abstractmethod

import numpy as np

from .activations import ReLU
from .attention import build_attention, create_causal_mask
from .errors import EmptyInput, InvalidArgument, UninitializedModel
from .layers import Embedding, LayerNorm, Linear, PositionalEncoding, as_token_id


logger = logging.getLogger(__name__)


class TransformerBlock:
    """
    Single Transformer Block (Layer).

    Architecture (Pre-LN variant):

        x ─────────────────────────────┐
        │                              │ (Residual Connection 1)
        ▼                              │
    [LayerNorm] ──► [Attention] ───────+──► x1
        │
        x1 ────────────────────────────┐
        │                              │ (Residual Connection 2)
        ▼                              │
    [LayerNorm] ──► [FFN] ─────────────+──► output

    Where FFN is:
        FFN(x) = ReLU(x @ W_up) @ W_down
    """

    def __init__(self, layer_params, config):
        """
        Args:
            layer_params: LayerParams view of this block's weights
            config: ModelConfig
        """
        self.ln1 = LayerNorm(layer_params.ln1_gamma, layer_params.ln1_beta, config.eps)
        self.attn = build_attention(
            config.attention, layer_params.qkv, layer_params.attn_out, config.num_heads
        )

        self.ln2 = LayerNorm(layer_params.ln2_gamma, layer_params.ln2_beta, config.eps)
        self.ffn_up = Linear(layer_params.ffn_up)
        self.ffn_activation = ReLU()
        self.ffn_down = Linear(layer_params.ffn_down)

    def feed_forward(self, x):
        return self.ffn_down.forward(self.ffn_activation.forward(self.ffn_up.forward(x)))

    def forward(self, x, mask=None):
        """
        Whole-sequence forward pass.

        Args:
            x: Hidden states, shape (seq_len, hidden_dim)
            mask: Causal mask, shape (seq_len, seq_len)

        Returns:
            Hidden states, shape (seq_len, hidden_dim)
        """
        x1 = x + self.attn.forward(self.ln1.forward(x), mask)
        return x1 + self.feed_forward(self.ln2.forward(x1))

    def forward_sequential(self, x):
        """
        Same computation as forward(), one position at a time.

        Normalization and the feed-forward network only read their own
        position. Attention at position p reads the projected rows 0..p,
        all of which are complete before position p is attended.
        """
        seq_len = x.shape[0]

        cache = [None] * seq_len
        for p in range(seq_len):
            cache[p] = self.attn.project(self.ln1.forward(x[p]))
        cache = np.stack(cache)

        out = np.empty_like(x)
        for p in range(seq_len):
            x1 = x[p] + self.attn.attend(cache, p)
            out[p] = x1 + self.feed_forward(self.ln2.forward(x1))

        return out


class ForwardEngine(ABC):
    """
    Contract for a forward pass implementation.

    forward(token_ids) returns the logits for the position after the last
    token. Implementations differ only in how they schedule the arithmetic.

    An engine starts without parameters; attach() must be called before
    forward(). Engines are not safe to share between concurrent callers.
    """

    name = None

    def __init__(self, config, params=None):
        self.config = config
        self.params = None
        if params is not None:
            self.attach(params)

    @property
    def ready(self):
        return self.params is not None

    def attach(self, params):
        """Build the layers over a ParameterSet."""
        if params.config != self.config:
            raise InvalidArgument("parameter set was built for a different configuration")

        self.params = params
        self.embedding = Embedding(params.token_embedding)
        self.pos_encoding = PositionalEncoding(params.position_embedding)
        self.blocks = [TransformerBlock(params.layer(i), self.config)
                       for i in range(self.config.num_layers)]
        self.ln_final = LayerNorm(params.final_gamma, params.final_beta, self.config.eps)
        self.output_proj = Linear(params.lm_head)

    def _context(self, token_ids):
        if not self.ready:
            raise UninitializedModel(f"{type(self).__name__} has no parameters attached")

        V = self.config.vocab_size
        ids = [as_token_id(t) % V for t in token_ids]
        if not ids:
            raise EmptyInput("forward pass needs at least one token")

        # Only the trailing context_length tokens are visible
        return np.array(ids[-self.config.context_length:], dtype=np.int64)

    def hidden_states(self, token_ids):
        """
        Hidden state buffer after the last transformer block.

        Args:
            token_ids: Sequence of token ids

        Returns:
            Array of shape (L, hidden_dim), L = min(len(token_ids), context_length)
        """
        return self._hidden_states(self._context(token_ids))

    def forward(self, token_ids):
        """
        Logits for the next token.

        Args:
            token_ids: Sequence of token ids; ids outside the vocabulary are
                       reduced modulo vocab_size

        Returns:
            Array of shape (vocab_size,)

        Raises:
            UninitializedModel: no parameters attached
            EmptyInput: token_ids is empty
            InvalidArgument: an id is not an integer
        """
        hidden = self._hidden_states(self._context(token_ids))

        # Normalization is per position, so only the last row is needed
        last = self.ln_final.forward(hidden[-1])
        return self.output_proj.forward(last)

    @abstractmethod
    def _hidden_states(self, ids):
        """Run embedding and every block over ids (already truncated)."""


class VectorizedEngine(ForwardEngine):
    """Whole-sequence engine. Positions and heads are processed in parallel by numpy."""

    name = "vectorized"

    def _hidden_states(self, ids):
        h = self.pos_encoding.forward(self.embedding.forward(ids))

        mask = create_causal_mask(len(ids), h.dtype)
        for block in self.blocks:
            h = block.forward(h, mask)
        return h


class ReferenceEngine(ForwardEngine):
    """Sequential reference engine. Every position is computed in its own loop iteration."""

    name = "reference"

    def _hidden_states(self, ids):
        h = np.empty((len(ids), self.config.hidden_dim), dtype=self.config.dtype)
        for p, token_id in enumerate(ids):
            h[p] = self.embedding.forward(token_id) + self.pos_encoding.at(p)

        for block in self.blocks:
            h = block.forward_sequential(h)
        return h


ENGINES = {
    VectorizedEngine.name: VectorizedEngine,
    ReferenceEngine.name: ReferenceEngine,
}


def create_forward_engine(config, params=None):
    """Forward engine selected by config.backend."""
    engine = ENGINES[config.backend](config, params)
    logger.debug("Created %s forward engine (%s attention)", engine.name, config.attention)
    return engine
