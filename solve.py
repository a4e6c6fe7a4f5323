"""
---
version: 0.2.0
created: 2026-10-12
updated: 2026-10-19
---

solve.py — Break a monoalphabetic substitution cipher by hill climbing.

Reads the ciphertext and a maximum number of guesses (prompting for either
when not given), loads or builds a tetragram table, then runs the search.
Every accepted key is printed as it is found; the best decode seen over the
whole run is reported at the end.

Usage:
    python3 solve.py --table english_quadgrams.txt
    python3 solve.py -c "ltaqtubeqtjcmnzqhiq" -n 2500 --table quads.json
    python3 solve.py --ciphertext-file msg.txt --corpus book.txt --seed 7
    python3 solve.py ... --quiet --save-json result.json --plot trace.png
"""

from __future__ import annotations

import argparse
import json
import sys
import time
from pathlib import Path

import numpy as np

from monosub import (
    DEFAULT_MAX_GUESSES, MAX_MUTATION_ATTEMPTS,
    SearchController, validate_config,
    load_tetragram_table, build_tetragram_table, load_corpus_text,
    format_improvement, format_result, plot_score_trace,
)


def print_improvement(plaintext: str, score: float, key: tuple[str, ...]) -> None:
    print()
    print(format_improvement(plaintext, score, key))


def print_restart(restarts: int, iteration: int) -> None:
    # Not an error: the neighbourhood of the current key is used up.
    print(f"\n  [restart {restarts} @ iteration {iteration}] "
          "no unused key variation; restarting with a fresh random key")


def read_ciphertext(args: argparse.Namespace) -> str:
    if args.ciphertext is not None:
        return args.ciphertext
    if args.ciphertext_file is not None:
        return Path(args.ciphertext_file).read_text(encoding="utf-8")
    return input("Enter the ciphertext:\n")


def read_max_guesses(args: argparse.Namespace) -> int:
    if args.max_guesses is not None:
        return args.max_guesses
    raw = input(f"What is the maximum number of guesses? "
                f"I recommend {DEFAULT_MAX_GUESSES}.\n").strip()
    if not raw:
        return DEFAULT_MAX_GUESSES
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Guess budget must be an integer, got {raw!r}") from None


def load_table(args: argparse.Namespace) -> dict[str, float]:
    if args.table is not None:
        table = load_tetragram_table(args.table)
        print(f"Loaded {len(table)} tetragrams from {args.table}")
        return table
    corpus = " ".join(load_corpus_text(p) for p in args.corpus)
    table = build_tetragram_table(corpus, log_scale=args.log_scale)
    print(f"Built {len(table)} tetragrams from {len(args.corpus)} corpus file(s)")
    return table


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Hill-climbing solver for monoalphabetic substitution ciphers")
    src = parser.add_mutually_exclusive_group()
    src.add_argument("-c", "--ciphertext", type=str, default=None,
                     help="Ciphertext (spaces allowed; prompted for if absent)")
    src.add_argument("--ciphertext-file", type=str, default=None,
                     help="Read ciphertext from a file")
    parser.add_argument("-n", "--max-guesses", type=int, default=None,
                        help=f"Guess budget (prompted for if absent; "
                             f"recommended {DEFAULT_MAX_GUESSES})")
    tbl = parser.add_mutually_exclusive_group(required=True)
    tbl.add_argument("--table", type=str, default=None,
                     help="Tetragram table (.json or 'QUAD COUNT' lines)")
    tbl.add_argument("--corpus", type=str, nargs="+", default=None,
                     help="Build the table from these corpus text files")
    parser.add_argument("--log-scale", action="store_true",
                        help="With --corpus: use log10 probabilities as weights")
    parser.add_argument("--seed", type=int, default=None,
                        help="Random seed (default: unseeded)")
    parser.add_argument("--max-attempts", type=int, default=MAX_MUTATION_ATTEMPTS,
                        help="Mutation attempts before restarting "
                             f"(default: {MAX_MUTATION_ATTEMPTS})")
    parser.add_argument("--quiet", action="store_true",
                        help="Do not print every accepted key")
    parser.add_argument("--save-json", type=str, default=None,
                        help="Write the final result as JSON")
    parser.add_argument("--plot", type=str, default=None,
                        help="Save a plot of the best-score trace")
    args = parser.parse_args(argv)

    if args.max_attempts <= 0:
        parser.error("--max-attempts must be positive")

    try:
        table = load_table(args)
        raw_ciphertext = read_ciphertext(args)
        max_guesses = read_max_guesses(args)
        ciphertext = validate_config(raw_ciphertext, max_guesses)
    except (ValueError, OSError) as e:
        parser.error(str(e))
    if not table:
        print("WARNING: tetragram table is empty; every key will score 0")

    print("=" * 70)
    print("MONOALPHABETIC SUBSTITUTION HILL CLIMB")
    print("=" * 70)
    print(f"Ciphertext length: {len(ciphertext)}")
    print(f"Guess budget:      {max_guesses}")
    print(f"Seed:              {args.seed}")

    t0 = time.time()
    controller = SearchController(
        ciphertext, table, max_guesses,
        rng=np.random.default_rng(args.seed),
        on_improvement=None if args.quiet else print_improvement,
        on_restart=print_restart,
        max_attempts=args.max_attempts,
    )
    result = controller.run()
    elapsed = time.time() - t0

    print("\n" + "=" * 70)
    print("RESULT")
    print("=" * 70)
    print(format_result(result, ciphertext))
    print(f"\nElapsed: {elapsed:.1f}s")

    if args.save_json:
        out = result.to_dict()
        out["ciphertext"] = ciphertext
        out["seed"] = args.seed
        with open(args.save_json, "w") as f:
            json.dump(out, f, indent=2)
        print(f"Saved: {args.save_json}")

    if args.plot:
        plot_score_trace(result, args.plot)

    return 0


if __name__ == "__main__":
    sys.exit(main())
