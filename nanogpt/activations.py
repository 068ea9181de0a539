"""
Activation Functions

Inference only needs the forward direction of each function, so there is no
cached state: every call is a pure function of its input.

- ReLU: clamps negative values to zero (used inside the feed-forward network)
- Softmax: turns scores into a probability distribution (used by attention)
"""

import numpy as np


class ReLU:
    """
    Rectified Linear Unit.

    Forward:
        y = max(0, x)
    """

    def forward(self, x):
        # np.maximum keeps the dtype of x
        return np.maximum(x, 0)


class Softmax:
    """
    Softmax activation function.

    Forward:
        softmax(x)_i = exp(x_i) / sum_j(exp(x_j))

    Numerical Stability:
        softmax(x) = softmax(x - c) for any constant c. Choosing c = max(x)
        makes every exponent <= 0, so exp never overflows. Entries equal to
        -inf (masked positions) come out as exactly 0.
    """

    def forward(self, x, axis=-1):
        """
        Compute softmax along the given axis.

        Args:
            x: Scores of shape (..., n)
            axis: Axis holding the distribution

        Returns:
            Same shape as x, non-negative, summing to 1 along axis
        """
        x_max = np.max(x, axis=axis, keepdims=True)
        exp_x = np.exp(x - x_max)
        return exp_x / np.sum(exp_x, axis=axis, keepdims=True)


def softmax(x, axis=-1):
    """Functional form of Softmax.forward."""
    return Softmax().forward(x, axis=axis)
