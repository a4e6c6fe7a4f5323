from __future__ import annotations

import numpy as np
import pytest


class ScriptedRng:
    """Stand-in for numpy.random.Generator that replays fixed choices."""

    def __init__(self, ints=(), perms=()):
        self.ints = list(ints)
        self.perms = list(perms)

    def integers(self, low, high):
        value = self.ints.pop(0)
        assert low <= value < high, f"scripted {value} outside [{low}, {high})"
        return value

    def permutation(self, n):
        if self.perms:
            return np.array(self.perms.pop(0))
        return np.arange(n)


@pytest.fixture
def rng():
    return np.random.default_rng(12345)


@pytest.fixture
def scripted():
    return ScriptedRng
