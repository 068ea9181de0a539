"""
Inference Engine

The single object a caller talks to. It owns the tokenizer, the parameter
set, a forward engine, and the sampler's random source:

    engine = initialize(ModelConfig(), seed=42)
    ids = engine.encode("hello")
    new_ids = engine.generate(ids, max_new_tokens=10, temperature=0.8)
    text = engine.decode(new_ids)

One seed fixes everything random. It is split into two independent streams,
one for weight initialization and one for sampling, so drawing a different
number of tokens never changes the weights of a later engine.

An engine is initialized once. Concurrent callers need their own engines.
"""

import logging
import time
from dataclasses import dataclass

import numpy as np

from .config import ModelConfig
from .errors import InitializationError, UninitializedModel
from .generation import GenerationLoop, GenerationResult
from .params import initialize_parameters
from .sampling import Sampler
from .tokenizer import Tokenizer
from .transformer import create_forward_engine


logger = logging.getLogger(__name__)


@dataclass
class Completion(GenerationResult):
    """A GenerationResult with the new tokens decoded to text."""

    text: str = ""


class InferenceEngine:
    """
    Tokenizer + parameters + forward pass + sampling behind one interface.

    Args:
        config: ModelConfig (defaults if None)
        seed: Integer seed for weights and sampling; None for OS entropy
    """

    def __init__(self, config=None, seed=None):
        self.config = config if config is not None else ModelConfig()
        self.seed = seed

        self.tokenizer = None
        self.params = None
        self.forward_engine = None
        self.sampler = None
        self.loop = None

    @property
    def ready(self):
        return self.loop is not None

    def initialize(self):
        """
        Build vocabulary, parameters and forward engine.

        Returns:
            self

        Raises:
            InitializationError: already initialized, or resources could not
                                 be allocated
            InvalidArgument: the configuration cannot hold the vocabulary
        """
        if self.ready:
            raise InitializationError("engine is already initialized")

        start = time.perf_counter()
        init_seq, sample_seq = np.random.SeedSequence(self.seed).spawn(2)

        tokenizer = Tokenizer(self.config.vocab_size)
        try:
            params = initialize_parameters(self.config, np.random.default_rng(init_seq))
            forward_engine = create_forward_engine(self.config, params)
        except MemoryError as exc:
            raise InitializationError(f"could not allocate model parameters: {exc}") from exc

        sampler = Sampler(np.random.default_rng(sample_seq))

        self.tokenizer = tokenizer
        self.params = params
        self.forward_engine = forward_engine
        self.sampler = sampler
        self.loop = GenerationLoop(
            forward_engine,
            sampler,
            eos_id=tokenizer.special_token_ids().eos,
            context_length=self.config.context_length,
            truncated_length=self.config.truncated_length,
        )

        logger.info(
            "Engine ready in %.2fs: %d layers, %d heads, hidden %d, vocab %d, %s backend",
            time.perf_counter() - start, self.config.num_layers, self.config.num_heads,
            self.config.hidden_dim, self.config.vocab_size, self.config.backend,
        )
        return self

    def _require_ready(self):
        if not self.ready:
            raise UninitializedModel("call initialize() first")

    def encode(self, text):
        self._require_ready()
        return self.tokenizer.encode(text)

    def decode(self, token_ids):
        self._require_ready()
        return self.tokenizer.decode(token_ids)

    def special_token_ids(self):
        self._require_ready()
        return self.tokenizer.special_token_ids()

    def generate(self, prompt_ids, max_new_tokens, temperature):
        """
        Generate new token ids after prompt_ids.

        Returns:
            List of at most max_new_tokens ids; shorter if the eos id was
            sampled or a step failed
        """
        return self.generate_result(prompt_ids, max_new_tokens, temperature).tokens

    def generate_result(self, prompt_ids, max_new_tokens, temperature):
        """Like generate(), returning the full GenerationResult with metrics."""
        self._require_ready()
        return self.loop.run(prompt_ids, max_new_tokens, temperature)

    def stream(self, prompt_ids, max_new_tokens, temperature):
        """Yield new token ids one at a time. Stop iterating to cancel."""
        self._require_ready()
        return self.loop.stream(prompt_ids, max_new_tokens, temperature)

    def complete(self, prompt, max_new_tokens=50, temperature=0.8):
        """
        Text in, text out.

        The prompt is encoded and prefixed with the beginning-of-sequence
        token, so even an empty prompt produces a valid model input.

        Returns:
            Completion
        """
        self._require_ready()

        prompt_ids = [self.tokenizer.special_token_ids().bos] + self.tokenizer.encode(prompt)
        result = self.loop.run(prompt_ids, max_new_tokens, temperature)

        return Completion(text=self.tokenizer.decode(result.tokens), **vars(result))


def initialize(config=None, seed=None):
    """Create and initialize an InferenceEngine."""
    return InferenceEngine(config, seed).initialize()
