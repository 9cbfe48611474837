import random
import typing

T = typing.TypeVar("T")


def weighted_choice (options: typing.Sequence[typing.Tuple[T, int]], rng: random.Random) -> T:

	"""Pick one item from a list of (value, weight) pairs.

	Weights are positive integers and are relative - they don't need to sum to
	100. Exactly one ``rng.randrange(total)`` draw is consumed, and the first
	entry whose cumulative weight exceeds the draw is returned, so the result
	for a given RNG state is fully determined.

	Parameters:
		options: List of `(value, weight)` tuples
		rng: Random number generator instance

	Example:
		```python
		steps = seedmidi.sequence_utils.weighted_choice([
			(1, 40),   # one step: 40%
			(2, 30),   # two steps: 30%
			(4, 30),   # four steps: 30%
		], rng)
		```
	"""

	if not options:
		raise ValueError("Options list cannot be empty")

	total = sum(weight for _, weight in options)

	if total <= 0:
		raise ValueError("Total weight must be positive")

	threshold = rng.randrange(total)
	cumulative = 0

	for value, weight in options:
		cumulative += weight
		if threshold < cumulative:
			return value

	return options[-1][0]


def clamp (value: int, low: int, high: int) -> int:

	"""Limit ``value`` to the inclusive range ``[low, high]``."""

	return max(low, min(high, value))
