import dataclasses
import logging
import os
import typing

import yaml

import seedmidi.constants
import seedmidi.notes
import seedmidi.scales


logger = logging.getLogger(__name__)


class ConfigError (ValueError):

	"""Raised when generation parameters are out of range or malformed."""


@dataclasses.dataclass (frozen=True)
class GeneratorConfig:

	"""Validated, immutable generation parameters.

	Every field is checked on construction, so a ``GeneratorConfig`` that
	exists is always safe to hand to the generator.

	Parameters:
		seed: Pseudorandom seed (0 .. 2**64-1). Same seed, same sequence.
		bpm: Tempo in beats per minute (>= 1).
		bars: Number of 4/4 bars to generate (>= 1).
		ticks_per_quarter: File resolution (1 .. 32767).
		root_pitch: MIDI note the scale is built on (0-127).
		scale: Scale name, see ``seedmidi.scales.SCALE_NAMES``.
		channel: MIDI channel (0-15).
		program: General MIDI program number (0-127).
	"""

	seed: int = seedmidi.constants.DEFAULT_SEED
	bpm: int = seedmidi.constants.DEFAULT_BPM
	bars: int = seedmidi.constants.DEFAULT_BARS
	ticks_per_quarter: int = seedmidi.constants.DEFAULT_TICKS_PER_QUARTER
	root_pitch: int = seedmidi.constants.DEFAULT_ROOT
	scale: str = seedmidi.constants.DEFAULT_SCALE
	channel: int = seedmidi.constants.DEFAULT_CHANNEL
	program: int = seedmidi.constants.DEFAULT_PROGRAM

	def __post_init__ (self) -> None:

		_check_range("seed", self.seed, 0, seedmidi.constants.MAX_SEED)
		_check_range("bpm", self.bpm, 1, None)
		_check_range("bars", self.bars, 1, None)
		_check_range("ticks_per_quarter", self.ticks_per_quarter, 1, seedmidi.constants.MAX_TICKS_PER_QUARTER)
		_check_range("root_pitch", self.root_pitch, 0, seedmidi.constants.MIDI_MAX)
		_check_range("channel", self.channel, 0, seedmidi.constants.MAX_CHANNEL)
		_check_range("program", self.program, 0, seedmidi.constants.MIDI_MAX)

		if not isinstance(self.scale, str):
			raise ConfigError(f"scale must be a string, got {self.scale!r}")

		try:
			scale = seedmidi.scales.normalize_scale_name(self.scale)
		except ValueError as e:
			raise ConfigError(str(e)) from None

		# Frozen dataclass: bypass __setattr__ to store the canonical name.
		object.__setattr__(self, "scale", scale)

	def with_seed (self, seed: int) -> "GeneratorConfig":

		"""Return a copy of this config with a different seed."""

		return dataclasses.replace(self, seed=seed)

	@property
	def step_ticks (self) -> int:

		"""Ticks in one sixteenth-note step."""

		return self.ticks_per_quarter // 4

	@property
	def total_steps (self) -> int:

		return self.bars * seedmidi.constants.STEPS_PER_BAR

	@property
	def total_ticks (self) -> int:

		return self.total_steps * self.step_ticks

	@property
	def microseconds_per_quarter (self) -> int:

		return seedmidi.constants.MICROSECONDS_PER_MINUTE // max(self.bpm, 1)


def _check_range (name: str, value: typing.Any, low: int, high: typing.Optional[int]) -> None:

	"""Raise ``ConfigError`` unless ``value`` is an int within ``[low, high]``."""

	if isinstance(value, bool) or not isinstance(value, int):
		raise ConfigError(f"{name} must be an integer, got {value!r}")

	if value < low or (high is not None and value > high):
		bounds = f"{low}..{high}" if high is not None else f">= {low}"
		raise ConfigError(f"{name} must be {bounds}, got {value}")


def load_config (config_path: str = 'seedmidi.yaml') -> typing.Dict[str, typing.Any]:

	"""
	Load generation parameters from a YAML file.
	"""

	if not os.path.exists(config_path):
		logger.warning(f"Config file {config_path} not found. Using defaults.")
		return {}

	with open(config_path, 'r') as f:
		data = yaml.safe_load(f)

	if data is None:
		return {}

	if not isinstance(data, dict):
		raise ConfigError(f"Config file {config_path} must contain a mapping, got {type(data).__name__}")

	return data


_MAPPING_KEYS: typing.Dict[str, str] = {
	"seed": "seed",
	"bpm": "bpm",
	"bars": "bars",
	"ppqn": "ticks_per_quarter",
	"ticks_per_quarter": "ticks_per_quarter",
	"root": "root_pitch",
	"root_pitch": "root_pitch",
	"scale": "scale",
	"channel": "channel",
	"program": "program",
}


def config_from_mapping (mapping: typing.Mapping[str, typing.Any], **overrides: typing.Any) -> GeneratorConfig:

	"""Build a ``GeneratorConfig`` from a config-file mapping plus overrides.

	Overrides use field names (``ticks_per_quarter``, ``root_pitch`` ...) and
	are applied when not ``None``, so unset command-line flags leave the file
	values (or the defaults) in place. A root given as a note name is parsed.

	Example:
		```python
		config = config_from_mapping({"root": "A3", "scale": "major"}, bpm=90)
		```
	"""

	fields: typing.Dict[str, typing.Any] = {}

	for key, value in mapping.items():

		if key not in _MAPPING_KEYS:
			raise ConfigError(f"Unknown config key {key!r}. Known keys: {', '.join(sorted(_MAPPING_KEYS))}")

		fields[_MAPPING_KEYS[key]] = value

	for key, value in overrides.items():

		if key not in GeneratorConfig.__dataclass_fields__:
			raise ConfigError(f"Unknown config field {key!r}")

		if value is not None:
			fields[key] = value

	root = fields.get("root_pitch")

	if isinstance(root, str):
		try:
			fields["root_pitch"] = seedmidi.notes.parse_note(root)
		except ValueError as e:
			raise ConfigError(f"root: {e}") from None

	return GeneratorConfig(**fields)
