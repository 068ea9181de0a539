import numpy as np
import pytest

from nanogpt.config import ModelConfig
from nanogpt.params import initialize_parameters


@pytest.fixture
def tiny_config():
    """Small float64 model so engines can be compared tightly."""
    return ModelConfig(
        vocab_size=256,
        context_length=16,
        hidden_dim=16,
        num_heads=4,
        num_layers=2,
        dtype="float64",
    )


@pytest.fixture
def tiny_params(tiny_config):
    return initialize_parameters(tiny_config, np.random.default_rng(0))


@pytest.fixture
def rng():
    return np.random.default_rng(1234)
