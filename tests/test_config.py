import dataclasses

import pytest

from nanogpt.config import CONFIG, ModelConfig
from nanogpt.errors import InvalidArgument


def test_defaults_match_config_dict():
    config = ModelConfig()
    assert config.vocab_size == 2048
    assert config.context_length == 128
    assert config.hidden_dim == 128
    assert config.num_heads == 8
    assert config.num_layers == 4
    assert config.head_dim == 16
    assert config.ffn_dim == 512
    assert config.truncated_length == 102


def test_from_dict_ignores_generation_keys():
    config = ModelConfig.from_dict(dict(CONFIG, num_layers=2))
    assert config.num_layers == 2
    assert config.to_dict()["num_layers"] == 2
    assert "temperature" not in config.to_dict()


def test_is_immutable():
    with pytest.raises(dataclasses.FrozenInstanceError):
        ModelConfig().num_layers = 3


@pytest.mark.parametrize("overrides", [
    {"hidden_dim": 100, "num_heads": 8},
    {"num_heads": 0},
    {"num_layers": -1},
    {"vocab_size": 2048.0},
    {"context_length": True},
    {"eps": 0.0},
    {"attention": "sparse"},
    {"backend": "gpu"},
    {"init": "orthogonal"},
    {"dtype": "float16"},
    {"truncate_ratio": 0.0},
    {"truncate_ratio": 1.5},
    {"context_length": 1, "truncate_ratio": 0.5},
])
def test_rejects_invalid_values(overrides):
    with pytest.raises(InvalidArgument):
        ModelConfig(**overrides)


def test_invalid_argument_is_value_error():
    with pytest.raises(ValueError):
        ModelConfig(num_heads=3)
