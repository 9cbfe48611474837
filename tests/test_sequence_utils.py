import random
import typing

import pytest

import seedmidi.sequence_utils


class ScriptedRandom:

	"""Returns scripted values from randrange and records each call."""

	def __init__ (self, values: typing.List[int]) -> None:

		self.values = list(values)
		self.calls: typing.List[typing.Tuple[int, ...]] = []

	def randrange (self, *args: int) -> int:

		self.calls.append(args)
		return self.values.pop(0)


ANCHOR = [(0, 30), (1, 15), (2, 30), (3, 15), (4, 10)]


@pytest.mark.parametrize("draw, expected", [
	(0, 0),
	(29, 0),
	(30, 1),
	(44, 1),
	(45, 2),
	(74, 2),
	(75, 3),
	(89, 3),
	(90, 4),
	(99, 4),
])
def test_weighted_choice_inverse_cdf (draw: int, expected: int) -> None:

	"""The first entry whose cumulative weight exceeds the draw is chosen."""

	rng = ScriptedRandom([draw])

	assert seedmidi.sequence_utils.weighted_choice(ANCHOR, rng) == expected


def test_weighted_choice_single_draw_over_total_weight () -> None:

	"""Exactly one randrange(total) draw is consumed."""

	rng = ScriptedRandom([10])
	seedmidi.sequence_utils.weighted_choice([("a", 3), ("b", 7)], rng)

	assert rng.calls == [(10,)]


def test_weighted_choice_deterministic () -> None:

	"""Same seed produces the same choices."""

	options = [(1, 40), (2, 30), (3, 10), (4, 20)]
	rng_a = random.Random(123)
	rng_b = random.Random(123)

	picks_a = [seedmidi.sequence_utils.weighted_choice(options, rng_a) for _ in range(50)]
	picks_b = [seedmidi.sequence_utils.weighted_choice(options, rng_b) for _ in range(50)]

	assert picks_a == picks_b
	assert set(picks_a) <= {1, 2, 3, 4}


def test_weighted_choice_empty_raises () -> None:

	"""An empty options list raises ValueError."""

	with pytest.raises(ValueError):
		seedmidi.sequence_utils.weighted_choice([], random.Random(0))


def test_weighted_choice_zero_total_raises () -> None:

	"""All-zero weights raise ValueError."""

	with pytest.raises(ValueError):
		seedmidi.sequence_utils.weighted_choice([("a", 0), ("b", 0)], random.Random(0))


def test_clamp () -> None:

	"""Values are limited to the inclusive range."""

	assert seedmidi.sequence_utils.clamp(-3, 0, 127) == 0
	assert seedmidi.sequence_utils.clamp(140, 0, 127) == 127
	assert seedmidi.sequence_utils.clamp(64, 0, 127) == 64
