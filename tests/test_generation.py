import numpy as np
import pytest

from nanogpt.errors import EmptyInput, InvalidArgument, UninitializedModel
from nanogpt.generation import GenerationLoop, GenerationState, StopReason
from nanogpt.sampling import Sampler
from nanogpt.transformer import VectorizedEngine


class RecordingEngine:
    """Forward engine stand-in that records every context it receives."""

    def __init__(self, vocab_size=32, fail_at=None, ready=True):
        self.vocab_size = vocab_size
        self.fail_at = fail_at
        self.ready = ready
        self.contexts = []

    def forward(self, token_ids):
        if self.fail_at is not None and len(self.contexts) == self.fail_at:
            raise RuntimeError("device lost")
        self.contexts.append(list(token_ids))
        return np.zeros(self.vocab_size)


class ScriptedSampler:
    """Returns a fixed sequence of tokens, then repeats the last one."""

    def __init__(self, tokens):
        self.tokens = list(tokens)
        self.calls = 0

    def __call__(self, logits, temperature):
        token = self.tokens[min(self.calls, len(self.tokens) - 1)]
        self.calls += 1
        return token


def make_loop(engine=None, sampler=None, eos_id=2, context_length=10, truncated_length=8):
    return GenerationLoop(
        engine if engine is not None else RecordingEngine(),
        sampler if sampler is not None else ScriptedSampler([7]),
        eos_id=eos_id,
        context_length=context_length,
        truncated_length=truncated_length,
    )


def test_zero_new_tokens():
    engine = RecordingEngine()
    result = make_loop(engine).run([1, 5], 0, 0.8)
    assert result.tokens == []
    assert result.stop_reason == StopReason.MAX_TOKENS
    assert engine.contexts == []


def test_generates_exactly_max_new_tokens():
    result = make_loop(sampler=ScriptedSampler([7, 8, 9])).run([1], 5, 0.8)
    assert result.tokens == [7, 8, 9, 9, 9]
    assert result.stop_reason == StopReason.MAX_TOKENS
    assert result.prompt_tokens == 1
    assert result.total_tokens == 6


def test_stops_on_eos_and_includes_it():
    result = make_loop(sampler=ScriptedSampler([7, 8, 2, 9])).run([1], 10, 0.8)
    assert result.tokens == [7, 8, 2]
    assert result.stop_reason == StopReason.EOS


def test_eos_id_comes_from_caller():
    result = make_loop(sampler=ScriptedSampler([2, 2, 5]), eos_id=5).run([1], 10, 0.8)
    assert result.tokens == [2, 2, 5]
    assert result.stop_reason == StopReason.EOS


def test_context_grows_then_truncates():
    engine = RecordingEngine()
    make_loop(engine, context_length=10, truncated_length=8).run(list(range(20, 26)), 12, 0.8)

    lengths = [len(c) for c in engine.contexts]
    assert max(lengths) <= 10
    # 6 prompt tokens grow to 10, the 11th append cuts back to 8
    assert lengths[:6] == [6, 7, 8, 9, 10, 8]
    assert engine.contexts[5] == engine.contexts[4][-7:] + [7]


def test_long_prompt_truncated_before_first_forward():
    engine = RecordingEngine()
    prompt = list(range(100, 125))
    make_loop(engine, context_length=10).run(prompt, 1, 0.8)
    assert engine.contexts[0] == prompt[-10:]


def test_step_failure_returns_partial_output():
    engine = RecordingEngine(fail_at=3)
    result = make_loop(engine, sampler=ScriptedSampler([4, 5, 6, 7])).run([1], 10, 0.8)
    assert result.tokens == [4, 5, 6]
    assert result.stop_reason == StopReason.ERROR
    assert isinstance(result.error, RuntimeError)


def test_failure_on_first_step_returns_empty():
    result = make_loop(RecordingEngine(fail_at=0)).run([1], 10, 0.8)
    assert result.tokens == []
    assert result.stop_reason == StopReason.ERROR


@pytest.mark.parametrize("temperature", [0, -0.5])
def test_invalid_temperature_raises_immediately(temperature):
    engine = RecordingEngine()
    with pytest.raises(InvalidArgument):
        make_loop(engine).run([1], 5, temperature)
    assert engine.contexts == []


@pytest.mark.parametrize("max_new_tokens", [-1, 2.5, True])
def test_invalid_max_new_tokens(max_new_tokens):
    with pytest.raises(InvalidArgument):
        make_loop().run([1], max_new_tokens, 0.8)


def test_empty_prompt():
    with pytest.raises(EmptyInput):
        make_loop().run([], 5, 0.8)


def test_uninitialized_engine():
    with pytest.raises(UninitializedModel):
        make_loop(RecordingEngine(ready=False)).run([1], 5, 0.8)


def test_stream_can_be_cancelled_between_steps():
    engine = RecordingEngine()
    loop = make_loop(engine)
    stream = loop.stream([1], 100, 0.8)
    tokens = [next(stream) for _ in range(3)]
    assert loop.state == GenerationState.RUNNING

    stream.close()
    assert len(tokens) == 3
    assert len(engine.contexts) == 3
    assert loop.state == GenerationState.STOPPED
    assert loop.stop_reason == StopReason.CANCELLED


def test_closing_after_last_token_keeps_natural_stop_reason():
    loop = make_loop(sampler=ScriptedSampler([7, 2]))
    stream = loop.stream([1], 10, 0.8)
    assert [next(stream), next(stream)] == [7, 2]
    stream.close()
    assert loop.stop_reason == StopReason.EOS

    loop = make_loop()
    stream = loop.stream([1], 2, 0.8)
    next(stream)
    next(stream)
    stream.close()
    assert loop.stop_reason == StopReason.MAX_TOKENS


def test_huge_prompt_ids_generate_normally():
    engine = RecordingEngine()
    result = make_loop(engine).run([1, 2**70], 3, 0.8)
    assert result.stop_reason == StopReason.MAX_TOKENS
    assert len(result.tokens) == 3
    assert engine.contexts[0] == [1, 2**70]


def test_non_integer_prompt_ids_are_rejected_up_front():
    engine = RecordingEngine()
    with pytest.raises(InvalidArgument):
        make_loop(engine).run([1, 5.9], 3, 0.8)
    assert engine.contexts == []


def test_metrics_are_reported():
    result = make_loop().run([1], 4, 0.8)
    assert result.duration >= 0
    assert result.tokens_per_second >= 0


def test_with_real_engine_and_sampler(tiny_config, tiny_params):
    engine = VectorizedEngine(tiny_config, tiny_params)
    loop = GenerationLoop(engine, Sampler(np.random.default_rng(0)), eos_id=2,
                          context_length=tiny_config.context_length,
                          truncated_length=tiny_config.truncated_length)
    result = loop.run([1, 60, 61], 30, 1.0)
    assert len(result.tokens) <= 30
    assert all(0 <= t < tiny_config.vocab_size for t in result.tokens)
    if result.stop_reason == StopReason.MAX_TOKENS:
        assert len(result.tokens) == 30
    else:
        assert result.stop_reason == StopReason.EOS
        assert result.tokens[-1] == 2
