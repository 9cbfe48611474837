import typing


SCALE_DEFINITIONS: typing.Dict[str, typing.Tuple[int, ...]] = {
	"major": (0, 2, 4, 5, 7, 9, 11),
	"natural_minor": (0, 2, 3, 5, 7, 8, 10),
	"minor_pentatonic": (0, 3, 5, 7, 10),
	"major_pentatonic": (0, 2, 4, 7, 9),
}

SCALE_NAMES: typing.List[str] = sorted(SCALE_DEFINITIONS)

# Spellings accepted in addition to the canonical snake_case names.
_ALIASES: typing.Dict[str, str] = {
	"ionian": "major",
	"minor": "natural_minor",
	"aeolian": "natural_minor",
	"naturalminor": "natural_minor",
	"minorpentatonic": "minor_pentatonic",
	"majorpentatonic": "major_pentatonic",
}


def normalize_scale_name (name: str) -> str:

	"""Return the canonical scale name for a loosely spelled one.

	Case is ignored and ``-`` or spaces are treated as ``_``, so
	``"Minor-Pentatonic"`` and ``"MinorPentatonic"`` both resolve to
	``"minor_pentatonic"``.

	Raises:
		ValueError: If the name does not match a known scale.
	"""

	key = name.strip().lower().replace("-", "_").replace(" ", "_")

	if key in SCALE_DEFINITIONS:
		return key

	squashed = key.replace("_", "")

	if squashed in _ALIASES:
		return _ALIASES[squashed]

	raise ValueError(f"Unknown scale {name!r}. Available: {', '.join(SCALE_NAMES)}")


def scale_semitones (name: str) -> typing.Tuple[int, ...]:

	"""Return the ordered semitone offsets (degrees) of a scale."""

	return SCALE_DEFINITIONS[normalize_scale_name(name)]
