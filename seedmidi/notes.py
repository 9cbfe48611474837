"""Note name helpers.

Scientific pitch notation with middle C as ``C4`` (MIDI note 60):

```python
seedmidi.notes.parse_note("F#5")  # 78
seedmidi.notes.parse_note("Db2")  # 37
seedmidi.notes.note_name(60)      # "C4"
```
"""

import typing


NOTE_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

_PITCH_CLASSES: typing.Dict[str, int] = {
	"C": 0,
	"D": 2,
	"E": 4,
	"F": 5,
	"G": 7,
	"A": 9,
	"B": 11,
}

_SHARPS = ("#", "♯")
_FLATS = ("b", "B", "♭")


def parse_note (text: str) -> int:

	"""Convert a note name such as ``"C4"`` or ``"Bb3"`` to a MIDI note number.

	A bare integer string (``"60"``) is accepted as a MIDI note number.

	Raises:
		ValueError: For an empty string, an unknown letter, a missing or
			malformed octave, or a result outside 0-127.
	"""

	s = text.strip()

	if not s:
		raise ValueError("empty note")

	if s.isdigit():
		midi = int(s)

	else:
		letter = s[0].upper()

		if letter not in _PITCH_CLASSES:
			raise ValueError(f"bad note letter: {s[0]}")

		pitch_class = _PITCH_CLASSES[letter]
		rest = s[1:]

		if rest[:1] in _SHARPS:
			pitch_class += 1
			rest = rest[1:]
		elif rest[:1] in _FLATS:
			pitch_class -= 1
			rest = rest[1:]

		rest = rest.strip()

		if not rest:
			raise ValueError(f"missing octave in {text!r}, expected like C#4")

		try:
			octave = int(rest)
		except ValueError:
			raise ValueError(f"bad octave: {rest}") from None

		midi = (octave + 1) * 12 + pitch_class

	if not 0 <= midi <= 127:
		raise ValueError(f"note out of MIDI range 0..127: {midi}")

	return midi


def note_name (pitch: int) -> str:

	"""Convert a MIDI note number to a name, e.g. 60 → ``"C4"``, 42 → ``"F#2"``."""

	octave = (pitch // 12) - 1
	return f"{NOTE_NAMES[pitch % 12]}{octave}"
