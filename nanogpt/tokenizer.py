"""
Tokenizer for Mixed Korean/English Text

Text is split into fragments at whitespace runs and at every character that
is neither an ASCII word character nor a Hangul syllable. Each fragment is
then mapped to ids:

    - a fragment that is itself a vocabulary entry becomes one id
      ("hello" -> chars, "the" -> 1 id, "학교" -> 1 id)
    - anything else falls back to one id per character, with <unk> for
      characters outside the vocabulary

Decoding is deliberately lossy: whitespace runs collapse to single spaces,
leading/trailing whitespace is dropped, and unknown characters come back as
the literal "<unk>". decode(encode(text)) is therefore not always text.
"""

import re

from .vocab import Vocabulary


# The capturing group keeps the separators as fragments of their own
SPLIT_PATTERN = re.compile(r"(\s+|[^A-Za-z0-9_가-힯])")
WHITESPACE_RUN = re.compile(r"\s+")


class Tokenizer:
    """
    Maps text to token ids and back using a fixed Vocabulary.

    Args:
        vocab_size: Size of the vocabulary to build
        vocabulary: An existing Vocabulary to share (overrides vocab_size)
    """

    def __init__(self, vocab_size=2048, vocabulary=None):
        self.vocab = vocabulary if vocabulary is not None else Vocabulary(vocab_size)

    def __len__(self):
        return len(self.vocab)

    def __contains__(self, token):
        return token in self.vocab

    @property
    def vocab_size(self):
        return len(self.vocab)

    def token_to_id(self, token):
        return self.vocab.token_to_id(token)

    def id_to_token(self, token_id):
        return self.vocab.id_to_token(token_id)

    def special_token_ids(self):
        """The reserved (pad, bos, eos, unk) ids."""
        return self.vocab.special

    def encode(self, text):
        """
        Convert text to token ids.

        Args:
            text: String to tokenize (empty string gives an empty list)

        Returns:
            List of integer token ids
        """
        if not text:
            return []

        unk = self.vocab.special.unk
        ids = []
        for fragment in SPLIT_PATTERN.split(text):
            if not fragment:
                continue

            if fragment in self.vocab:
                ids.append(self.vocab.token_to_id(fragment))
                continue

            # Character-level fallback
            for char in fragment:
                ids.append(self.vocab.token_to_id(char) if char in self.vocab else unk)

        return ids

    def decode(self, token_ids):
        """
        Convert token ids back to text.

        Args:
            token_ids: Iterable of integer token ids

        Returns:
            Concatenated text with whitespace runs collapsed and trimmed
        """
        text = "".join(self.vocab.id_to_token(int(t)) for t in token_ids)
        return WHITESPACE_RUN.sub(" ", text).strip()
