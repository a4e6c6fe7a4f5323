from __future__ import annotations

import math

import numpy as np
import pytest

from monosub import (
    SCORE_SENTINEL, SearchController, decode, encode, format_key,
    is_valid_key, random_key, solve, tetragram_score,
)

CIPHERTEXT = "ltaqtubeqtjcmnzqhiq"
TABLE = {"tuat": 2.3, "here": 4.1, "thet": 1.2, "ther": 3.3, "ethe": 1.9}


def make(max_guesses=200, seed=7, table=TABLE, **kw):
    return SearchController(
        CIPHERTEXT, table, max_guesses, rng=np.random.default_rng(seed), **kw
    )


def test_initial_state():
    c = make()
    st = c.state
    assert is_valid_key(st.current_key)
    assert st.epoch_best_score == SCORE_SENTINEL
    assert st.global_best_score == SCORE_SENTINEL
    assert st.iteration == 0
    assert c.used_keys == set()


def test_runs_exact_number_of_iterations():
    c = make(max_guesses=500)
    result = c.run()
    assert result.iterations == 500
    assert len(result.history) == 500
    assert c.state.iteration == 500


def test_global_best_beats_first_key():
    c = make(max_guesses=500)
    first = tetragram_score(decode(c.state.current_key, CIPHERTEXT), TABLE)
    result = c.run()
    assert result.score >= first


def test_result_is_consistent():
    result = make().run()
    assert decode(result.key, CIPHERTEXT) == result.plaintext
    assert tetragram_score(result.plaintext, TABLE) == result.score
    assert 0 <= result.iteration < result.iterations


def test_no_key_reused_within_epoch():
    c = make(max_guesses=400, max_attempts=2)
    seen: set = set()
    epoch = 0
    while not c.done:
        if not c.step():
            epoch += 1
            seen = set()
            continue
        key = c.state.current_key
        assert key not in seen
        seen.add(key)
    assert c.restarts == epoch


def test_epoch_best_is_monotonic():
    c = make(max_guesses=300, max_attempts=2)
    last = c.state.epoch_best_score
    while not c.done:
        restarts = c.restarts
        c.step()
        if c.restarts != restarts:
            last = c.state.epoch_best_score
            continue
        assert c.state.epoch_best_score >= last
        last = c.state.epoch_best_score


def test_global_best_is_monotonic_across_restarts():
    result = make(max_guesses=300, max_attempts=1).run()
    assert result.restarts > 0
    assert all(a <= b for a, b in zip(result.history, result.history[1:]))


def test_restart_resets_epoch():
    c = make()
    for _ in range(10):
        c.step()
    before = c.state.iteration
    c.restart()
    assert c.used_keys == set()
    assert c.state.epoch_best_score == SCORE_SENTINEL
    assert c.state.iteration == before
    assert c.restarts == 1


def test_restarts_do_not_use_up_guesses():
    # With no perturbation attempts every second step restarts.
    restarts = []
    c = make(max_guesses=5, max_attempts=0,
             on_restart=lambda n, it: restarts.append((n, it)))
    result = c.run()
    assert result.iterations == 5
    assert result.evaluated == 5
    assert result.restarts == 4
    assert restarts == [(1, 1), (2, 2), (3, 3), (4, 4)]


def test_ties_are_accepted_on_flat_landscape():
    calls = []
    c = make(max_guesses=50, table={},
             on_improvement=lambda p, s, k: calls.append((p, s, k)))
    result = c.run()
    assert len(calls) == 50
    assert all(s == 0.0 for _, s, _ in calls)
    assert result.score == 0.0
    # equal scores overwrite the global best, so the last key wins
    assert result.iteration == 49
    assert result.key == calls[-1][2]


def test_improvements_report_decoded_text():
    calls = []
    make(on_improvement=lambda p, s, k: calls.append((p, s, k))).run()
    assert calls
    for plaintext, score, key in calls:
        assert decode(key, CIPHERTEXT) == plaintext
        assert tetragram_score(plaintext, TABLE) == score


def test_negative_weights_use_infinite_sentinel():
    table = {"tuat": -1.5, "here": -0.5}
    c = make(max_guesses=20, table=table)
    assert c.sentinel == -math.inf
    result = c.run()
    assert result.score <= 0.0
    assert math.isfinite(result.score)


def test_same_seed_same_result():
    a = make(seed=99).run()
    b = make(seed=99).run()
    assert a == b


def test_zero_budget_reports_initial_key():
    c = make(max_guesses=0)
    result = c.run()
    assert result.iterations == 0
    assert result.score == SCORE_SENTINEL
    assert result.key == c.state.current_key
    assert result.plaintext == ""


def test_solve_cleans_ciphertext():
    result = solve(" LTAQ TUBE qtjc mnzq hiq ", TABLE, 50,
                   rng=np.random.default_rng(3))
    assert len(result.plaintext) == len(CIPHERTEXT)
    assert result.iterations == 50


@pytest.mark.parametrize("budget", [0, -5, 2.5, True])
def test_solve_rejects_bad_budget(budget):
    with pytest.raises(ValueError):
        solve(CIPHERTEXT, TABLE, budget)


def test_solve_rejects_foreign_symbols():
    with pytest.raises(ValueError):
        solve("abc123", TABLE, 10)


def test_search_climbs_towards_plaintext():
    plaintext = "thereisthetuataraherethereitis"
    key = random_key(np.random.default_rng(1))
    ciphertext = encode(key, plaintext)
    table = {plaintext[i:i + 4]: 1.0 for i in range(len(plaintext) - 3)}
    start = SearchController(ciphertext, table, 0, rng=np.random.default_rng(5))
    first = tetragram_score(decode(start.state.current_key, ciphertext), table)
    result = solve(ciphertext, table, 2000, rng=np.random.default_rng(5))
    assert result.score >= first
    assert len(format_key(result.key)) == 26


def test_to_dict_is_json_ready():
    result = make(max_guesses=10).run()
    d = result.to_dict()
    assert d["key"] == format_key(result.key)
    assert d["iterations"] == 10
    assert len(d["history"]) == 10
