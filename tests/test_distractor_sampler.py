"""Tests for core/distractor_sampler.py"""

import random
from collections import Counter

import pytest

from core.distractor_sampler import DistractorSampler
from core.errors import NoCandidates

IN_UNIT = [f"in{i}" for i in range(10)]
CROSS = [f"x{i}" for i in range(10)]


@pytest.fixture
def sampler(rng):
    return DistractorSampler(rng)


def test_split_gives_cross_unit_the_larger_half(sampler):
    picked = sampler.sample(["a"], IN_UNIT, CROSS, 7)
    assert len(picked) == 7
    assert sum(1 for p in picked if p.startswith("in")) == 3
    assert sum(1 for p in picked if p.startswith("x")) == 4


def test_even_split(sampler):
    picked = sampler.sample(["a"], IN_UNIT, CROSS, 8)
    assert sum(1 for p in picked if p.startswith("in")) == 4


def test_no_overlap_and_no_duplicates(sampler):
    correct = ["in0", "in1", "x0"]
    in_unit = IN_UNIT + ["in2", "in2"]
    for _ in range(50):
        picked = sampler.sample(correct, in_unit, CROSS, 9)
        assert len(picked) == len(set(picked))
        assert not set(picked) & set(correct)


def test_small_pools_are_taken_whole(sampler):
    picked = sampler.sample(["a"], ["b"], ["c", "d"], 9)
    assert sorted(picked) == ["b", "c", "d"]


def test_no_backfill_between_pools(sampler):
    picked = sampler.sample(["a"], [], CROSS, 6)
    assert len(picked) == 3


def test_cross_unit_candidate_that_is_an_in_unit_fact_is_excluded(sampler):
    for _ in range(20):
        picked = sampler.sample(["a"], ["shared", "b"], ["shared", "c"], 4)
        assert picked.count("shared") <= 1
        assert sorted(picked) == ["b", "c", "shared"]


def test_empty_correct_set_is_invalid(sampler):
    with pytest.raises(NoCandidates):
        sampler.sample([], IN_UNIT, CROSS, 7)


def test_selection_covers_whole_pool():
    sampler = DistractorSampler(random.Random(7))
    counts = Counter()
    for _ in range(2000):
        counts.update(sampler.sample(["a"], IN_UNIT, [], 2))
    assert set(counts) == set(IN_UNIT)
    # Each element is expected about 200 times (1 of 10 per draw)
    assert min(counts.values()) > 120
    assert max(counts.values()) < 280
