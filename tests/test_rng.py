"""Tests for seeded random streams and forking."""
from __future__ import annotations

import pickle

import pytest

from bankgen.rng import RandomStream


def _draws(stream: RandomStream, count: int = 20) -> list[float]:
    return [stream.float64() for _ in range(count)]


def test_same_seed_reproduces_sequence() -> None:
    assert _draws(RandomStream(99)) == _draws(RandomStream(99))


def test_different_seeds_diverge() -> None:
    assert _draws(RandomStream(1)) != _draws(RandomStream(2))


def test_zero_seed_is_replaced_and_recorded() -> None:
    stream = RandomStream(0)
    assert stream.seed != 0
    assert _draws(RandomStream(stream.seed)) == _draws(stream)


def test_fork_n_matches_successive_forks() -> None:
    batch = RandomStream(7).fork_n(4)
    parent = RandomStream(7)
    single = [parent.fork() for _ in range(4)]

    assert [fork.seed for fork in batch] == [fork.seed for fork in single]
    for left, right in zip(batch, single):
        assert _draws(left) == _draws(right)


def test_forks_are_independent_of_later_parent_draws() -> None:
    first = RandomStream(5)
    second = RandomStream(5)
    fork_a = first.fork()
    fork_b = second.fork()
    _draws(second, 50)

    assert _draws(fork_a) == _draws(fork_b)


def test_sibling_forks_differ() -> None:
    left, right = RandomStream(5).fork_n(2)
    assert _draws(left) != _draws(right)


def test_int_range_is_inclusive(rng: RandomStream) -> None:
    values = {rng.int_range(1, 3) for _ in range(500)}
    assert values == {1, 2, 3}


def test_reversed_int_range_clamps_without_drawing() -> None:
    stream = RandomStream(11)
    assert stream.int_range(9, 2) == 9
    assert stream.float64() == RandomStream(11).float64()


def test_int_n_non_positive_returns_zero(rng: RandomStream) -> None:
    assert rng.int_n(0) == 0
    assert rng.int_n(-3) == 0


def test_choice_rejects_empty_sequence(rng: RandomStream) -> None:
    with pytest.raises(IndexError):
        rng.choice([])


def test_probability_extremes(rng: RandomStream) -> None:
    assert not any(rng.probability(0.0) for _ in range(100))
    assert all(rng.probability(1.0) for _ in range(100))


def test_numeric_string_length(rng: RandomStream) -> None:
    value = rng.numeric_string(8)
    assert len(value) == 8
    assert value.isdigit()


def test_stream_survives_pickling() -> None:
    stream = RandomStream(21)
    _draws(stream, 3)
    clone = pickle.loads(pickle.dumps(stream))

    assert clone.seed == stream.seed
    assert _draws(clone) == _draws(stream)
