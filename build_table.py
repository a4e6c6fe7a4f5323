"""
---
version: 0.1.0
created: 2026-10-14
updated: 2026-10-14
---

build_table.py — Build a tetragram table for solve.py from corpus texts.

Counts overlapping four-letter windows across one or more plain-text files
(Project Gutenberg boilerplate is stripped) and writes a JSON table of
tetragram -> weight.

Usage:
    python3 build_table.py book1.txt book2.txt -o quads.json
    python3 build_table.py book.txt -o quads_log.json --log-scale
    python3 build_table.py book.txt -o quads.json --top 20
"""

from __future__ import annotations

import argparse
import sys

from monosub import build_tetragram_table, load_corpus_text, save_tetragram_table


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Build a tetragram table from corpus texts")
    parser.add_argument("corpus", nargs="+", help="Corpus text files")
    parser.add_argument("-o", "--output", type=str, default="tetragrams.json",
                        help="Output JSON file (default: tetragrams.json)")
    parser.add_argument("--log-scale", action="store_true",
                        help="Store log10 probabilities instead of frequencies")
    parser.add_argument("--top", type=int, default=10,
                        help="Show the N heaviest tetragrams (default: 10)")
    args = parser.parse_args(argv)

    try:
        texts = [load_corpus_text(p) for p in args.corpus]
    except OSError as e:
        parser.error(str(e))

    table = build_tetragram_table(" ".join(texts), log_scale=args.log_scale)
    if not table:
        parser.error("corpus has fewer than four letters; no tetragrams found")

    save_tetragram_table(table, args.output)
    print(f"Corpus files:  {len(texts)}")
    print(f"Tetragrams:    {len(table)}")
    print(f"Saved: {args.output}")

    if args.top > 0:
        print(f"\nTop {args.top}:")
        for quad, w in sorted(table.items(), key=lambda kv: -kv[1])[:args.top]:
            print(f"  {quad}  {w:.6g}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
