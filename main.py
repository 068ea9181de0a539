#!/usr/bin/env python3
"""
Nano Inference Engine - Main Entry Point

This script builds a small transformer with freshly initialized weights,
tokenizes a prompt and generates a continuation one token at a time.

The weights are random, so the output is not meaningful text. What the
script demonstrates is the machinery:
1. Mixed Korean/English tokenization
2. Embedding and sinusoidal positional encoding
3. Causal self-attention, feed-forward networks, residuals, layer norm
4. Temperature sampling and a sliding context window

Usage:
    python main.py --prompt "안녕하세요 hello" --max-new-tokens 20 --seed 42
"""

import argparse
import logging

from nanogpt.config import CONFIG, ModelConfig, ATTENTION_KINDS, BACKENDS
from nanogpt.engine import initialize


def print_separator(title=""):
    """Print a visual separator."""
    print("\n" + "=" * 60)
    if title:
        print(f"  {title}")
        print("=" * 60)


def build_parser():
    parser = argparse.ArgumentParser(description="Generate tokens with a nano transformer.")
    parser.add_argument("--prompt", default="hello", help="text to continue")
    parser.add_argument("--max-new-tokens", type=int, default=CONFIG["max_new_tokens"])
    parser.add_argument("--temperature", type=float, default=CONFIG["temperature"])
    parser.add_argument("--seed", type=int, default=CONFIG["seed"])
    parser.add_argument("--backend", choices=BACKENDS, default=CONFIG["backend"])
    parser.add_argument("--attention", choices=ATTENTION_KINDS, default=CONFIG["attention"])
    parser.add_argument("--layers", type=int, default=CONFIG["num_layers"])
    parser.add_argument("--verbose", "-v", action="store_true", help="log every generation step")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = dict(CONFIG, backend=args.backend, attention=args.attention, num_layers=args.layers)
    config = ModelConfig.from_dict(settings)

    # =========================================================================
    # Step 1: Build the engine
    # =========================================================================
    print_separator("STEP 1: Building Engine")

    engine = initialize(config, seed=args.seed)

    print(f"\nModel Configuration:")
    print(f"  Vocabulary size: {engine.tokenizer.vocab_size}")
    print(f"  Context length: {config.context_length}")
    print(f"  Hidden dimension: {config.hidden_dim}")
    print(f"  Number of heads: {config.num_heads}")
    print(f"  Number of layers: {config.num_layers}")
    print(f"  FFN dimension: {config.ffn_dim}")
    print(f"  Attention: {config.attention}, backend: {config.backend}")
    print(f"\nTotal parameters: {engine.params.count():,}")

    # =========================================================================
    # Step 2: Tokenize
    # =========================================================================
    print_separator("STEP 2: Tokenizing")

    prompt_ids = engine.encode(args.prompt)
    print(f"\n  Prompt: {args.prompt!r}")
    print(f"  Token ids: {prompt_ids}")
    print(f"  Tokens: {[engine.tokenizer.id_to_token(t) for t in prompt_ids]}")

    # =========================================================================
    # Step 3: Generate
    # =========================================================================
    print_separator("STEP 3: Generating")

    completion = engine.complete(args.prompt, args.max_new_tokens, args.temperature)

    print(f"\n  Generated ids: {completion.tokens}")
    print(f"  Decoded: {completion.text!r}")
    print(f"\n  Stop reason: {completion.stop_reason.value}")
    print(f"  Tokens: {len(completion.tokens)}")
    print(f"  Time: {completion.duration:.2f}s")
    print(f"  Speed: {completion.tokens_per_second:.1f} tok/s")

    if completion.error is not None:
        print(f"  Stopped early: {completion.error}")

    print_separator("COMPLETE")
    return completion


if __name__ == "__main__":
    main()
