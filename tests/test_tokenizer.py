import pytest

from nanogpt.errors import InvalidArgument
from nanogpt.tokenizer import Tokenizer
from nanogpt.vocab import (
    KOREAN_SYLLABLES,
    MIN_VOCAB_SIZE,
    PUNCTUATION,
    SPECIAL_TOKENS,
    UNK_TOKEN,
    Vocabulary,
)


@pytest.fixture(scope="module")
def tokenizer():
    return Tokenizer(2048)


def test_special_ids_are_fixed(tokenizer):
    special = tokenizer.special_token_ids()
    assert (special.pad, special.bos, special.eos, special.unk) == (0, 1, 2, 3)


def test_special_ids_decode_to_reserved_strings(tokenizer):
    special = tokenizer.special_token_ids()
    assert [tokenizer.decode([i]) for i in special] == list(SPECIAL_TOKENS)


def test_vocabulary_is_bijective_and_exact_size(tokenizer):
    tokens = tokenizer.vocab.tokens()
    assert len(tokens) == 2048
    assert len(set(tokens)) == 2048
    for token_id, token in enumerate(tokens):
        assert tokenizer.token_to_id(token) == token_id
        assert tokenizer.id_to_token(token_id) == token


def test_layout_order(tokenizer):
    assert tokenizer.token_to_id(".") == 4
    assert tokenizer.token_to_id(">") == 4 + len(PUNCTUATION) - 1
    assert tokenizer.token_to_id("0") == 36
    assert tokenizer.token_to_id("a") == 46
    assert tokenizer.token_to_id("A") == 47
    assert tokenizer.token_to_id(" ") == MIN_VOCAB_SIZE - 3
    assert tokenizer.token_to_id(KOREAN_SYLLABLES[0]) == MIN_VOCAB_SIZE
    assert tokenizer.id_to_token(2047) == "<sub_2047>"


def test_small_vocabulary_budgets():
    vocab = Vocabulary(256)
    assert len(vocab) == 256
    # No room for syllables below 256 - 1000; words stop at 256 - 100
    assert "가" not in vocab
    assert vocab.id_to_token(MIN_VOCAB_SIZE) == "the"
    assert vocab.id_to_token(155) != "<sub_155>"
    assert vocab.id_to_token(156) == "<sub_156>"


def test_vocabulary_too_small():
    with pytest.raises(InvalidArgument):
        Vocabulary(MIN_VOCAB_SIZE - 1)


def test_unknown_lookups_fall_back(tokenizer):
    assert tokenizer.token_to_id("no-such-token") == 3
    assert tokenizer.id_to_token(-1) == UNK_TOKEN
    assert tokenizer.id_to_token(5000) == UNK_TOKEN


def test_whole_word_and_character_fallback(tokenizer):
    assert tokenizer.encode("the") == [tokenizer.token_to_id("the")]
    assert tokenizer.encode("hello") == [tokenizer.token_to_id(c) for c in "hello"]


def test_korean_words_and_syllables(tokenizer):
    assert tokenizer.encode("학교") == [tokenizer.token_to_id("학교")]
    # Not a vocabulary word: one id per syllable
    assert tokenizer.encode("학생") == [tokenizer.token_to_id("학"), tokenizer.token_to_id("생")]
    # 녕 is not a curated syllable
    assert tokenizer.encode("안녕") == [tokenizer.token_to_id("안"), 3]


def test_separators_are_kept(tokenizer):
    ids = tokenizer.encode("the cat!")
    expected = [tokenizer.token_to_id("the"), tokenizer.token_to_id(" ")]
    expected += [tokenizer.token_to_id(c) for c in "cat"]
    expected.append(tokenizer.token_to_id("!"))
    assert ids == expected


def test_whitespace_runs_fall_back_per_character(tokenizer):
    space = tokenizer.token_to_id(" ")
    assert tokenizer.encode("a  b") == [tokenizer.token_to_id("a"), space, space, tokenizer.token_to_id("b")]


@pytest.mark.parametrize("text", ["", "   ", "\r\x00", "😀 ☃", "日本語", "​"])
def test_encode_never_raises(tokenizer, text):
    ids = tokenizer.encode(text)
    assert all(0 <= i < 2048 for i in ids)


def test_empty_input(tokenizer):
    assert tokenizer.encode("") == []
    assert tokenizer.decode([]) == ""


def test_out_of_alphabet_maps_to_unk(tokenizer):
    assert tokenizer.encode("😀") == [3]
    assert tokenizer.encode("日本") == [3, 3]


def test_decode_collapses_and_trims_whitespace(tokenizer):
    ids = tokenizer.encode("  hi \n\t there  ")
    assert tokenizer.decode(ids) == "hi there"


def test_decode_unknown_id(tokenizer):
    assert tokenizer.decode([99999]) == UNK_TOKEN


def test_roundtrip_single_entries(tokenizer):
    roundtrip = [t for t in tokenizer.vocab.tokens()[4:]
                 if not t.isspace() and not t.startswith("<sub_")]
    for token in roundtrip:
        token_id = tokenizer.token_to_id(token)
        assert tokenizer.encode(tokenizer.decode([token_id])) == [token_id], token


def test_known_non_roundtrip_entries(tokenizer):
    # Specials and filler re-tokenize into several characters
    assert len(tokenizer.encode(tokenizer.decode([1]))) > 1
    assert len(tokenizer.encode(tokenizer.decode([2047]))) > 1
    # Whitespace is trimmed away by decode
    assert tokenizer.encode(tokenizer.decode([tokenizer.token_to_id("\n")])) == []
