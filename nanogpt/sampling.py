"""
Temperature Sampling

Turning logits into a token takes two steps:

1. softmax(logits, temperature): divide by temperature, subtract the max,
   exponentiate and normalize
       - Lower temperature (e.g. 0.5): sharper, picks likely tokens
       - Higher temperature (e.g. 1.5): flatter, more random
2. sample(probabilities, rng): walk the cumulative distribution until it
   exceeds a uniform draw in [0, 1)

The random source is always passed in, so a seeded numpy Generator makes
sampling reproducible.
"""

import numpy as np

from .errors import InvalidArgument


def check_temperature(temperature):
    if not np.isfinite(temperature) or temperature <= 0:
        raise InvalidArgument(f"temperature must be a positive finite number, got {temperature!r}")


def softmax(logits, temperature=1.0):
    """
    Temperature-scaled, overflow-safe softmax.

    Args:
        logits: Finite scores of shape (vocab_size,)
        temperature: Positive scaling factor

    Returns:
        float64 probabilities, all >= 0, summing to 1

    Raises:
        InvalidArgument: temperature <= 0 or not finite
    """
    check_temperature(temperature)

    scaled = np.asarray(logits, dtype=np.float64) / temperature

    # After subtracting the max every exponent is <= 0
    exp = np.exp(scaled - np.max(scaled))
    return exp / np.sum(exp)


def sample(probabilities, rng):
    """
    Draw an index from a discrete distribution.

    Args:
        probabilities: Non-negative weights summing to ~1
        rng: numpy.random.Generator

    Returns:
        The first index whose cumulative sum exceeds a uniform draw in [0, 1).
        If rounding keeps the total below the draw, the last index.
    """
    probabilities = np.asarray(probabilities, dtype=np.float64)
    if probabilities.size == 0:
        raise InvalidArgument("cannot sample from an empty distribution")

    draw = rng.random()
    cumulative = np.cumsum(probabilities)

    # side="right" finds the first cumulative value strictly greater than draw
    index = int(np.searchsorted(cumulative, draw, side="right"))
    return min(index, probabilities.size - 1)


class Sampler:
    """
    Draws next tokens from logits with an owned random source.

    Args:
        rng: numpy.random.Generator; a fresh unseeded one if None
    """

    def __init__(self, rng=None):
        self.rng = rng if rng is not None else np.random.default_rng()

    def __call__(self, logits, temperature):
        """Sample one token id from logits at the given temperature."""
        return sample(softmax(logits, temperature), self.rng)
