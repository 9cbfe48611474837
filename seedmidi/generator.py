"""Seeded melody generation.

``generate_sequence()`` turns a ``GeneratorConfig`` into a ``Sequence`` of
``NoteEvent`` objects. It is a pure function: the same config (including the
seed) always yields the same notes, because every random decision is drawn
from one ``random.Random(seed)`` in a fixed order.

Per sixteenth-note step the draws are, in order:

1. rest gate (55% of steps are rests)
2. anchor degree (weighted towards the root and third degree)
3. stepwise-motion gate (65%), then a -1/0/+1 step from the last degree
4. octave shift (10% up, 5% down)
5. duration in steps (1, 2, 3 or 4)
6. base velocity, with an accent on quarter-note downbeats

A rest step consumes only the first draw. Reordering any of these changes the
output for a given seed.
"""

import dataclasses
import logging
import random
import typing

import seedmidi.config
import seedmidi.constants
import seedmidi.scales
import seedmidi.sequence_utils


logger = logging.getLogger(__name__)


@dataclasses.dataclass (frozen=True)
class NoteEvent:

	"""
	A single generated note, in absolute ticks.
	"""

	pitch: int
	start_tick: int
	end_tick: int
	velocity: int

	@property
	def duration (self) -> int:

		return self.end_tick - self.start_tick


@dataclasses.dataclass (frozen=True)
class Sequence:

	"""An immutable snapshot of one generation run.

	The encoder and the playback scheduler both read a ``Sequence`` without
	copying it. Regeneration builds a new one rather than changing this one.
	"""

	notes: typing.Tuple[NoteEvent, ...]
	bpm: int
	ticks_per_quarter: int
	total_ticks: int
	seed: int = 0
	scale: str = seedmidi.constants.DEFAULT_SCALE
	root_pitch: int = seedmidi.constants.DEFAULT_ROOT

	@property
	def microseconds_per_quarter (self) -> int:

		return seedmidi.constants.MICROSECONDS_PER_MINUTE // max(self.bpm, 1)

	def pitch_range (self, default: typing.Tuple[int, int] = (60, 72)) -> typing.Tuple[int, int]:

		"""Return ``(lowest, highest)`` pitch, or ``default`` when there are no notes."""

		if not self.notes:
			return default

		pitches = [note.pitch for note in self.notes]
		return min(pitches), max(pitches)


def generate_sequence (config: seedmidi.config.GeneratorConfig) -> Sequence:

	"""Generate the note sequence for ``config``.

	Cannot fail for a valid config. Pitches outside 0-127 after octave
	shifting are clamped into range, and notes that would run past the last
	tick are cut at ``total_ticks``.

	Example:
		```python
		config = seedmidi.config.GeneratorConfig(seed=42, bars=4, scale="major")
		sequence = seedmidi.generator.generate_sequence(config)
		```
	"""

	rng = random.Random(config.seed)
	scale = seedmidi.scales.scale_semitones(config.scale)
	max_degree = len(scale) - 1

	step_ticks = config.step_ticks
	total_ticks = config.total_ticks

	notes: typing.List[NoteEvent] = []
	last_degree = 0

	for step in range(config.total_steps):

		start_tick = step * step_ticks

		if rng.randrange(100) < seedmidi.constants.REST_THRESHOLD:
			continue

		if len(scale) >= 3:
			anchor = seedmidi.sequence_utils.weighted_choice(seedmidi.constants.ANCHOR_DEGREE_WEIGHTS, rng)
		else:
			anchor = rng.randrange(len(scale))

		anchor = seedmidi.sequence_utils.clamp(anchor, 0, max_degree)

		if rng.randrange(100) < seedmidi.constants.STEPWISE_THRESHOLD:
			delta = rng.randrange(3) - 1
			degree = seedmidi.sequence_utils.clamp(last_degree + delta, 0, max_degree)
		else:
			degree = anchor

		last_degree = degree

		octave_roll = rng.randrange(100)

		if octave_roll < seedmidi.constants.OCTAVE_UP_THRESHOLD:
			octave_shift = 12
		elif octave_roll < seedmidi.constants.OCTAVE_DOWN_THRESHOLD:
			octave_shift = -12
		else:
			octave_shift = 0

		pitch = seedmidi.sequence_utils.clamp(config.root_pitch + scale[degree] + octave_shift, 0, seedmidi.constants.MIDI_MAX)

		duration_steps = seedmidi.sequence_utils.weighted_choice(seedmidi.constants.DURATION_WEIGHTS, rng)
		end_tick = min(start_tick + duration_steps * step_ticks, total_ticks)

		accent = seedmidi.constants.ACCENT if step % seedmidi.constants.STEPS_PER_BEAT == 0 else 0
		velocity = min(rng.randrange(seedmidi.constants.VELOCITY_LOW, seedmidi.constants.VELOCITY_HIGH) + accent, seedmidi.constants.MIDI_MAX)

		notes.append(NoteEvent(pitch=pitch, start_tick=start_tick, end_tick=end_tick, velocity=velocity))

	logger.debug(f"Generated {len(notes)} notes from seed {config.seed:#x} ({config.total_steps} steps, {total_ticks} ticks)")

	return Sequence(
		notes = tuple(notes),
		bpm = config.bpm,
		ticks_per_quarter = config.ticks_per_quarter,
		total_ticks = total_ticks,
		seed = config.seed,
		scale = config.scale,
		root_pitch = config.root_pitch
	)
