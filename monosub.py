"""
---
version: 0.3.0
created: 2026-10-12
updated: 2026-10-19
---

monosub.py — Shared module for monoalphabetic substitution cryptanalysis.

Recovers plaintext from a simple substitution cipher by hill climbing with
restarts over the 26! keyspace, scoring candidate decodes by summed English
tetragram weights.

Seven sections:
  1. Data constants (alphabet, sentinel, mutation limits, letter freqs)
  2. Codec — key handling and substitution encode/decode
  3. Scoring — tetragram fitness, IC, letter-frequency fit
  4. Key mutation — swap / rotate neighbours, unused-key search
  5. Search — hill-climbing controller with restarts
  6. Table utils — load/build/save tetragram tables, corpus loading
  7. Output utils (formatting, score trace plot)
"""

from __future__ import annotations

import json
import math
import string
import warnings
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Mapping, Sequence

import numpy as np

# ============================================================================
# 1. DATA CONSTANTS
# ============================================================================

ALPHABET: tuple[str, ...] = tuple(string.ascii_lowercase)
KEY_LENGTH: int = len(ALPHABET)
_ALPHABET_INDEX: dict[str, int] = {c: i for i, c in enumerate(ALPHABET)}

# Starting epoch/global best. Below any sum of non-negative weights.
SCORE_SENTINEL: float = -1.0

# Perturbations tried before a neighbourhood counts as exhausted.
MAX_MUTATION_ATTEMPTS: int = 100_000

# Operator choice is drawn from 0..100; exactly one value rotates (~1%).
ROTATE_OPTIONS: int = 101
ROTATE_OPTION: int = 1

# Recommended guess budget for interactive runs.
DEFAULT_MAX_GUESSES: int = 2500

Key = tuple[str, ...]
TetragramTable = Mapping[str, float]

# English letter frequencies (approximate, for diagnostics).
ENGLISH_FREQ: dict[str, float] = {
    "e": 0.1270, "t": 0.0906, "a": 0.0817, "o": 0.0751, "i": 0.0697,
    "n": 0.0675, "s": 0.0633, "h": 0.0609, "r": 0.0599, "d": 0.0425,
    "l": 0.0403, "c": 0.0278, "u": 0.0276, "m": 0.0241, "w": 0.0236,
    "f": 0.0223, "g": 0.0202, "y": 0.0197, "p": 0.0193, "b": 0.0129,
    "v": 0.0098, "k": 0.0077, "j": 0.0015, "x": 0.0015, "q": 0.0010,
    "z": 0.0007,
}


# ============================================================================
# 2. CODEC — Substitution keys and encode/decode
# ============================================================================

def clean_ciphertext(raw: str) -> str:
    """
    Normalise user-supplied ciphertext: drop all whitespace, lowercase.

    Raises:
        ValueError: If nothing is left, or a non-alphabet symbol remains.
    """
    text = "".join(raw.split()).lower()
    if not text:
        raise ValueError("Ciphertext is empty")
    bad = sorted({c for c in text if c not in _ALPHABET_INDEX})
    if bad:
        raise ValueError(
            f"Ciphertext contains symbols outside a-z: {''.join(bad)!r}"
        )
    return text


def identity_key() -> Key:
    return ALPHABET


def random_key(rng: np.random.Generator | None = None) -> Key:
    """Uniformly random permutation of the alphabet."""
    if rng is None:
        rng = np.random.default_rng()
    return tuple(ALPHABET[int(i)] for i in rng.permutation(KEY_LENGTH))


def is_valid_key(key: Sequence[str]) -> bool:
    """True if key is a permutation of the alphabet."""
    return len(key) == KEY_LENGTH and set(key) == set(ALPHABET)


def format_key(key: Sequence[str]) -> str:
    return "".join(key)


def parse_key(text: str) -> Key:
    """
    Parse a 26-letter key string such as 'qwertyuiopasdfghjklzxcvbnm'.

    Raises:
        ValueError: If the letters are not a permutation of the alphabet.
    """
    key = tuple(text.strip().lower())
    if not is_valid_key(key):
        raise ValueError(f"Not a permutation of a-z: {text!r}")
    return key


def decode(key: Sequence[str], ciphertext: str) -> str:
    """
    Apply a key to ciphertext: the letter at alphabet index i becomes key[i].

    Symbols outside the alphabet pass through unchanged, so output length
    always equals input length.
    """
    mapping = dict(zip(ALPHABET, key))
    return "".join(mapping.get(c, c) for c in ciphertext)


def encode(key: Sequence[str], plaintext: str) -> str:
    """
    Inverse of decode(): produce the ciphertext that key decodes to plaintext.

    Raises:
        ValueError: If key is not a permutation of the alphabet.
    """
    if not is_valid_key(key):
        raise ValueError("Key must be a permutation of a-z")
    inverse = dict(zip(key, ALPHABET))
    return "".join(inverse.get(c, c) for c in plaintext)


# ============================================================================
# 3. SCORING — English-likeness via tetragram weights
# ============================================================================

def tetragram_score(text: str, table: TetragramTable) -> float:
    """
    Sum table weights over every overlapping four-letter window of text.

    Windows missing from the table contribute nothing. Texts shorter than
    four letters score 0. Summation runs left to right, so the same inputs
    always give the same float.
    """
    total = 0.0
    for p in range(len(text) - 3):
        total += table.get(text[p:p + 4], 0.0)
    return total


def score_sentinel(table: TetragramTable) -> float:
    """
    Lower bound for the search's best-score trackers.

    -1.0 is enough for tables of non-negative weights (counts, frequencies).
    Log-probability tables go negative, so they get -inf.
    """
    if any(w < 0 for w in table.values()):
        return -math.inf
    return SCORE_SENTINEL


def index_of_coincidence(text: str) -> float:
    """
    Compute the index of coincidence for a text.

    English: ~0.0667. Random (uniform 26): ~0.0385. Unchanged by
    substitution, so it can be computed on the ciphertext.
    """
    text = "".join(c for c in text.lower() if c in _ALPHABET_INDEX)
    n = len(text)
    if n < 2:
        return 0.0
    counts = Counter(text)
    return sum(c * (c - 1) for c in counts.values()) / (n * (n - 1))


def letter_frequency_test(text: str) -> dict:
    """
    Compare the letter distribution of a decode against English.

    Returns dict with:
        chi2: chi-squared against English frequencies
        p_value: p-value (25 dof)
        n: number of letters counted
    """
    from scipy import stats as sp_stats

    letters = [c for c in text.lower() if c in _ALPHABET_INDEX]
    total = len(letters)
    if total == 0:
        return {"chi2": float("inf"), "p_value": 0.0, "n": 0}

    counts = Counter(letters)
    obs_arr = np.array([counts.get(c, 0) for c in ALPHABET], dtype=float)
    exp_arr = np.array([ENGLISH_FREQ[c] * total for c in ALPHABET], dtype=float)
    exp_arr = np.maximum(exp_arr, 0.5)
    exp_arr = exp_arr * (obs_arr.sum() / exp_arr.sum())
    chi2, p_value = sp_stats.chisquare(obs_arr, exp_arr)
    return {"chi2": float(chi2), "p_value": float(p_value), "n": total}


# ============================================================================
# 4. KEY MUTATION — Neighbouring keys not yet tried this epoch
# ============================================================================

def swap_letters(key: Sequence[str], n1: int, n2: int) -> Key:
    """Copy of key with positions n1 and n2 exchanged (n1 == n2 is a no-op)."""
    swapped = list(key)
    swapped[n1], swapped[n2] = swapped[n2], swapped[n1]
    return tuple(swapped)


def rotate_right(key: Sequence[str], positions: int) -> Key:
    """Cyclic right rotation: the last `positions` letters move to the front."""
    positions %= len(key)
    if positions == 0:
        return tuple(key)
    return tuple(key[-positions:]) + tuple(key[:-positions])


def mutate_key(
    source: Key,
    used: set[Key] | frozenset[Key],
    rng: np.random.Generator | None = None,
    max_attempts: int = MAX_MUTATION_ATTEMPTS,
) -> Key | None:
    """
    Find a key near `source` that is not in `used`.

    The source itself is returned if it has not been used yet. Otherwise up
    to `max_attempts` fresh perturbations of the source are drawn: usually a
    swap of two random positions, occasionally (1 in ROTATE_OPTIONS) a right
    rotation by 1..25. The caller is responsible for adding the returned key
    to `used`.

    Returns:
        The new key, or None if every attempt hit a used key (the local
        neighbourhood is exhausted and the search should restart).
    """
    if rng is None:
        rng = np.random.default_rng()
    if source not in used:
        return source

    for _ in range(max_attempts):
        if int(rng.integers(0, ROTATE_OPTIONS)) == ROTATE_OPTION:
            candidate = rotate_right(source, int(rng.integers(1, KEY_LENGTH)))
        else:
            n1 = int(rng.integers(0, KEY_LENGTH))
            n2 = int(rng.integers(0, KEY_LENGTH))
            candidate = swap_letters(source, n1, n2)
        if candidate not in used:
            return candidate
    return None


# ============================================================================
# 5. SEARCH — Hill climbing with restarts
# ============================================================================

ImprovementFn = Callable[[str, float, Key], None]
RestartFn = Callable[[int, int], None]


@dataclass
class SearchState:
    """Evolving state of one search run. Owned by a SearchController."""

    current_key: Key
    epoch_best_key: Key
    epoch_best_score: float
    global_best_key: Key
    global_best_score: float
    global_best_plaintext: str = ""
    global_best_iteration: int = 0
    iteration: int = 0


@dataclass(frozen=True)
class SearchResult:
    score: float
    key: Key
    plaintext: str
    iteration: int
    iterations: int
    restarts: int
    evaluated: int
    history: tuple[float, ...] = field(default=(), repr=False)

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "key": format_key(self.key),
            "plaintext": self.plaintext,
            "iteration": self.iteration,
            "iterations": self.iterations,
            "restarts": self.restarts,
            "evaluated": self.evaluated,
            "history": list(self.history),
        }


class SearchController:
    """
    Hill climber over substitution keys.

    Each counted iteration draws an unused neighbour of the epoch-best key,
    decodes and scores it, and accepts it if it scores at least as well as
    the epoch best (ties move sideways across plateaus). When no unused
    neighbour can be found the epoch restarts from a fresh random key; a
    restart does not use up an iteration.
    """

    def __init__(
        self,
        ciphertext: str,
        table: TetragramTable,
        max_guesses: int,
        rng: np.random.Generator | None = None,
        on_improvement: ImprovementFn | None = None,
        on_restart: RestartFn | None = None,
        max_attempts: int = MAX_MUTATION_ATTEMPTS,
    ) -> None:
        self.ciphertext = ciphertext
        self.table = table
        self.max_guesses = max_guesses
        self.rng = rng if rng is not None else np.random.default_rng()
        self.on_improvement = on_improvement
        self.on_restart = on_restart
        self.max_attempts = max_attempts

        self.sentinel = score_sentinel(table)
        key = random_key(self.rng)
        self.state = SearchState(
            current_key=key,
            epoch_best_key=key,
            epoch_best_score=self.sentinel,
            global_best_key=key,
            global_best_score=self.sentinel,
        )
        self.used_keys: set[Key] = set()
        self.restarts = 0
        self.evaluated = 0
        self.history: list[float] = []

    @property
    def done(self) -> bool:
        return self.state.iteration >= self.max_guesses

    def restart(self) -> None:
        """Abandon the current neighbourhood for a fresh random key."""
        st = self.state
        key = random_key(self.rng)
        st.current_key = key
        st.epoch_best_key = key
        st.epoch_best_score = self.sentinel
        self.used_keys.clear()
        self.restarts += 1
        if self.on_restart is not None:
            self.on_restart(self.restarts, st.iteration)

    def step(self) -> bool:
        """
        Run one iteration of the search.

        Returns:
            True if a key was scored (the iteration counted), False if the
            neighbourhood was exhausted and a restart happened instead.
        """
        st = self.state
        key = mutate_key(st.epoch_best_key, self.used_keys, self.rng, self.max_attempts)
        if key is None:
            self.restart()
            return False

        self.used_keys.add(key)
        st.current_key = key
        plaintext = decode(key, self.ciphertext)
        score = tetragram_score(plaintext, self.table)
        self.evaluated += 1

        if score >= st.epoch_best_score:
            st.epoch_best_score = score
            st.epoch_best_key = key
            if self.on_improvement is not None:
                self.on_improvement(plaintext, score, key)
            if score >= st.global_best_score:
                st.global_best_score = score
                st.global_best_key = key
                st.global_best_plaintext = plaintext
                st.global_best_iteration = st.iteration

        self.history.append(st.global_best_score)
        st.iteration += 1
        return True

    def result(self) -> SearchResult:
        st = self.state
        return SearchResult(
            score=st.global_best_score,
            key=st.global_best_key,
            plaintext=st.global_best_plaintext,
            iteration=st.global_best_iteration,
            iterations=st.iteration,
            restarts=self.restarts,
            evaluated=self.evaluated,
            history=tuple(self.history),
        )

    def run(self) -> SearchResult:
        """Step until the guess budget is spent, then report the global best."""
        while not self.done:
            self.step()
        return self.result()


def validate_config(ciphertext: str, max_guesses: int) -> str:
    """
    Check search inputs before any search state is built.

    Returns:
        The cleaned ciphertext.

    Raises:
        ValueError: On empty or foreign ciphertext, or a non-positive budget.
    """
    if isinstance(max_guesses, bool) or not isinstance(max_guesses, (int, np.integer)):
        raise ValueError(f"Guess budget must be an integer, got {max_guesses!r}")
    if max_guesses <= 0:
        raise ValueError(f"Guess budget must be positive, got {max_guesses}")
    return clean_ciphertext(ciphertext)


def solve(
    ciphertext: str,
    table: TetragramTable,
    max_guesses: int = DEFAULT_MAX_GUESSES,
    rng: np.random.Generator | None = None,
    on_improvement: ImprovementFn | None = None,
    on_restart: RestartFn | None = None,
    max_attempts: int = MAX_MUTATION_ATTEMPTS,
) -> SearchResult:
    """Validate inputs and run a full search. See SearchController."""
    text = validate_config(ciphertext, max_guesses)
    controller = SearchController(
        text, table, int(max_guesses), rng=rng,
        on_improvement=on_improvement, on_restart=on_restart,
        max_attempts=max_attempts,
    )
    return controller.run()


# ============================================================================
# 6. TABLE UTILS — Tetragram tables and corpus text
# ============================================================================

def _check_tetragram(quad: str) -> str:
    quad = quad.lower()
    if len(quad) != 4 or any(c not in _ALPHABET_INDEX for c in quad):
        raise ValueError(f"Not a four-letter tetragram: {quad!r}")
    return quad


def load_tetragram_table(filepath: str | Path) -> dict[str, float]:
    """
    Load a tetragram table from disk.

    `.json` files hold one object of tetragram -> weight. Anything else is
    read as whitespace-separated `QUAD COUNT` lines (the common quadgram
    list format); blank lines and '#' comments are skipped and repeated
    tetragrams accumulate.

    Raises:
        ValueError: On malformed lines, bad tetragrams or non-finite weights.
    """
    path = Path(filepath)
    table: dict[str, float] = {}

    if path.suffix.lower() == ".json":
        raw = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise ValueError(f"{path}: expected a JSON object of tetragram -> weight")
        items = raw.items()
    else:
        items = []
        for lineno, line in enumerate(path.read_text(encoding="utf-8").splitlines(), 1):
            line = line.split("#", 1)[0].strip()
            if not line:
                continue
            parts = line.split()
            if len(parts) != 2:
                raise ValueError(f"{path}:{lineno}: expected 'QUAD COUNT', got {line!r}")
            items.append((parts[0], parts[1]))

    for quad, weight in items:
        try:
            w = float(weight)
        except (TypeError, ValueError):
            raise ValueError(f"{path}: bad weight for {quad!r}: {weight!r}") from None
        if not math.isfinite(w):
            raise ValueError(f"{path}: non-finite weight for {quad!r}")
        quad = _check_tetragram(str(quad))
        table[quad] = table.get(quad, 0.0) + w
    return table


def build_tetragram_table(text: str, log_scale: bool = False) -> dict[str, float]:
    """
    Build a tetragram table from a corpus text.

    Args:
        text: Raw text (alpha chars extracted, lowercased).
        log_scale: If set, weights are log10(probability), which are
            negative; otherwise relative frequencies in (0, 1].

    Returns:
        Dict mapping each observed tetragram to its weight.
    """
    clean = "".join(c for c in text.lower() if c in _ALPHABET_INDEX)
    counts = Counter(clean[i:i + 4] for i in range(len(clean) - 3))
    total = sum(counts.values())
    if total == 0:
        return {}
    if log_scale:
        return {q: math.log10(c / total) for q, c in counts.items()}
    return {q: c / total for q, c in counts.items()}


def save_tetragram_table(table: TetragramTable, filepath: str | Path) -> None:
    path = Path(filepath)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(dict(table), f, indent=0, sort_keys=True)


def load_corpus_text(filepath: str | Path) -> str:
    """
    Load a corpus text file, stripping Project Gutenberg header/footer
    boilerplate when present.
    """
    text = Path(filepath).read_text(encoding="utf-8", errors="replace")

    for marker in ("*** START OF THIS PROJECT GUTENBERG",
                   "*** START OF THE PROJECT GUTENBERG"):
        idx = text.find(marker)
        if idx != -1:
            nl = text.find("\n", idx)
            if nl != -1:
                text = text[nl + 1:]
            break

    for marker in ("*** END OF THIS PROJECT GUTENBERG",
                   "*** END OF THE PROJECT GUTENBERG"):
        idx = text.find(marker)
        if idx != -1:
            text = text[:idx]
            break

    return text.strip()


# ============================================================================
# 7. OUTPUT UTILS — Formatting and plots
# ============================================================================

def format_improvement(plaintext: str, score: float, key: Sequence[str]) -> str:
    return f"{plaintext}\n  score: {score:.4f}\n  key:   {format_key(key)}"


def format_result(result: SearchResult, ciphertext: str | None = None) -> str:
    """
    Format the final report of a search.

    Args:
        result: Value returned by SearchController.run().
        ciphertext: If given, ciphertext IC is included as a sanity check.
    """
    lines = [
        f"{'Top score':<22} {result.score:.4f}",
        f"{'Key':<22} {format_key(result.key)}",
        f"{'Found on iteration':<22} {result.iteration}",
        f"{'Iterations':<22} {result.iterations}",
        f"{'Restarts':<22} {result.restarts}",
        f"{'Keys evaluated':<22} {result.evaluated}",
    ]
    if ciphertext is not None:
        lines.append(
            f"{'Ciphertext IC':<22} {index_of_coincidence(ciphertext):.4f}"
            "  (English ~0.067, random ~0.038)"
        )
    if result.plaintext:
        freq = letter_frequency_test(result.plaintext)
        lines.append(f"{'Letter freq chi2':<22} {freq['chi2']:.1f}  (p={freq['p_value']:.4f})")
    lines.append("")
    lines.append("Plaintext:")
    lines.append(result.plaintext)
    return "\n".join(lines)


def plot_score_trace(
    result: SearchResult,
    save_path: str | Path | None = None,
) -> None:
    """
    Plot the global-best score against iteration.

    Requires matplotlib (optional dependency).
    """
    try:
        import matplotlib.pyplot as plt
    except ImportError:
        warnings.warn("matplotlib not available; skipping plot")
        return

    fig, ax = plt.subplots(figsize=(8, 4))
    ax.plot(range(len(result.history)), result.history, linewidth=1)
    ax.axvline(result.iteration, color="red", linestyle="--",
               label=f"best @ {result.iteration}")
    ax.set_xlabel("Iteration")
    ax.set_ylabel("Global best tetragram score")
    ax.set_title(f"Hill climb ({result.restarts} restarts)")
    ax.legend(fontsize=8)

    plt.tight_layout()
    if save_path:
        plt.savefig(str(save_path), dpi=150, bbox_inches="tight")
        print(f"Saved: {save_path}")
    else:
        plt.show()
    plt.close(fig)
