"""
Autoregressive Generation Loop

Starting from prompt tokens, repeatedly:
1. Run the forward pass on the current context to get next-token logits
2. Sample one token
3. Append it to the output and to the working context
4. Cut the working context back if it outgrew the model's window

The loop stops after max_new_tokens tokens or as soon as the
end-of-sequence token is sampled (the eos token itself is returned).

A failing step does not raise: the loop stops and the tokens produced so far
are returned with StopReason.ERROR and the exception attached. Invalid
arguments are still rejected before the first step.
"""

import enum
import logging
import numbers
import time
from dataclasses import dataclass, field
from typing import List, Optional

from .errors import EmptyInput, InvalidArgument, UninitializedModel
from .layers import as_token_id
from .sampling import check_temperature


logger = logging.getLogger(__name__)


class GenerationState(enum.Enum):
    RUNNING = "running"
    STOPPED = "stopped"


class StopReason(enum.Enum):
    MAX_TOKENS = "max_tokens"
    EOS = "eos"
    ERROR = "error"
    CANCELLED = "cancelled"


@dataclass
class GenerationResult:
    """Newly generated tokens plus timing metrics."""

    tokens: List[int] = field(default_factory=list)
    stop_reason: Optional[StopReason] = None
    error: Optional[BaseException] = None
    prompt_tokens: int = 0
    duration: float = 0.0

    @property
    def total_tokens(self):
        return self.prompt_tokens + len(self.tokens)

    @property
    def tokens_per_second(self):
        if self.duration <= 0:
            return 0.0
        return len(self.tokens) / self.duration


class GenerationLoop:
    """
    Drives a ForwardEngine and a Sampler one token at a time.

    Args:
        forward_engine: ForwardEngine with parameters attached
        sampler: Sampler owning the random source
        eos_id: End-of-sequence id declared by the vocabulary
        context_length: Maximum tokens passed to one forward call
        truncated_length: Tokens kept when the working context overflows
    """

    def __init__(self, forward_engine, sampler, eos_id, context_length, truncated_length):
        self.forward_engine = forward_engine
        self.sampler = sampler
        self.eos_id = eos_id
        self.context_length = context_length
        self.truncated_length = truncated_length

        self.state = GenerationState.STOPPED
        self.stop_reason = None
        self.error = None

    def _check(self, prompt_ids, max_new_tokens, temperature):
        if not self.forward_engine.ready:
            raise UninitializedModel("generation needs an engine with parameters attached")
        check_temperature(temperature)
        if (isinstance(max_new_tokens, bool) or not isinstance(max_new_tokens, numbers.Integral)
                or max_new_tokens < 0):
            raise InvalidArgument(f"max_new_tokens must be a non-negative integer, got {max_new_tokens!r}")
        if len(prompt_ids) == 0:
            raise EmptyInput("prompt must contain at least one token")

    def stream(self, prompt_ids, max_new_tokens, temperature):
        """
        Generate tokens lazily.

        Arguments are validated on the first next(). Closing the generator
        early is how a caller cancels: no further forward pass runs and
        stop_reason becomes StopReason.CANCELLED.

        Yields:
            Each new token id as soon as it is sampled
        """
        prompt_ids = [as_token_id(t) for t in prompt_ids]
        self._check(prompt_ids, max_new_tokens, temperature)

        # A prompt longer than the window is cut before the first forward call
        context = prompt_ids[-self.context_length:]

        self.state = GenerationState.RUNNING
        self.stop_reason = StopReason.MAX_TOKENS
        self.error = None

        generated = 0
        try:
            while generated < max_new_tokens:
                try:
                    logits = self.forward_engine.forward(context)
                    token = self.sampler(logits, temperature)
                except Exception as exc:
                    logger.warning("Generation step %d failed, returning %d tokens",
                                   generated, generated, exc_info=True)
                    self.stop_reason = StopReason.ERROR
                    self.error = exc
                    break

                generated += 1
                context.append(token)
                if len(context) > self.context_length:
                    context = context[-self.truncated_length:]

                logger.debug("Step %d: token %d (context %d)", generated, token, len(context))
                if token == self.eos_id:
                    self.stop_reason = StopReason.EOS

                try:
                    yield token
                except GeneratorExit:
                    # Closed by the caller before the run could finish on its own
                    if self.stop_reason == StopReason.MAX_TOKENS and generated < max_new_tokens:
                        self.stop_reason = StopReason.CANCELLED
                        logger.info("Generation cancelled after %d tokens", generated)
                    raise

                if self.stop_reason == StopReason.EOS:
                    break
        finally:
            self.state = GenerationState.STOPPED

    def run(self, prompt_ids, max_new_tokens, temperature):
        """
        Generate up to max_new_tokens tokens.

        Args:
            prompt_ids: Non-empty sequence of token ids
            max_new_tokens: Upper bound on the number of new tokens
            temperature: Positive sampling temperature

        Returns:
            GenerationResult

        Raises:
            UninitializedModel, InvalidArgument, EmptyInput: before any step runs
                InvalidArgument also covers non-integer prompt ids
        """
        prompt_ids = list(prompt_ids)
        result = GenerationResult(prompt_tokens=len(prompt_ids))

        start = time.perf_counter()
        result.tokens.extend(self.stream(prompt_ids, max_new_tokens, temperature))
        result.duration = time.perf_counter() - start

        result.stop_reason = self.stop_reason
        result.error = self.error

        logger.info(
            "Generated %d tokens in %.2fs (%.1f tok/s, stop: %s)",
            len(result.tokens), result.duration, result.tokens_per_second,
            result.stop_reason.value,
        )
        return result
