"""Live terminal view for the playback session.

Shows a persistent status line and, optionally, an ASCII piano roll of the
active sequence with a playhead marker. Log messages scroll above it.

The status line looks like::

	Seed: 0xC0FFEE  120 BPM  minor_pentatonic  Root: C4  Bar: 3.2  [PLAYING]

and the piano roll (one row per pitch, one column per grid slot)::

	  D#5         |. . O - . . . . X . . . o . . .|
	  C5          |X - - . . o . . . . O . . . . .|
	              |    ^                          |

The view only reads ``PlaybackScheduler.snapshot()``, so it can be redrawn at
any rate without touching playback.
"""

import logging
import shutil
import sys
import typing

import seedmidi.constants
import seedmidi.generator
import seedmidi.notes

if typing.TYPE_CHECKING:
	from seedmidi.playback import PlaybackScheduler, PlaybackState


_MAX_GRID_COLUMNS = 64
_MAX_ROWS = 24
_LABEL_WIDTH = 12
_MIN_TERMINAL_WIDTH = 40
_SUSTAIN = -1


class PianoRoll:

	"""ASCII piano roll of a ``Sequence``.

	Parameters:
		sequence: The sequence to draw.
		columns: Maximum number of grid columns. Each column covers
			``total_ticks / columns`` ticks; one column per sixteenth step
			when the sequence fits.
	"""

	def __init__ (self, sequence: seedmidi.generator.Sequence, columns: int = _MAX_GRID_COLUMNS) -> None:

		self.sequence = sequence
		total_steps = sequence.total_ticks // max(1, sequence.ticks_per_quarter // 4)
		self.columns = max(0, min(columns, total_steps))
		self.lines: typing.List[str] = self._render()

	@staticmethod
	def velocity_char (velocity: int) -> str:

		"""Map a velocity to ``.`` (none), ``o`` (<=80), ``O`` (<=110) or ``X``; ``-`` is sustain."""

		if velocity == _SUSTAIN:
			return "-"
		if velocity <= 0:
			return "."
		if velocity <= 80:
			return "o"
		if velocity <= 110:
			return "O"
		return "X"

	def slot_for_tick (self, tick: int) -> int:

		"""Column index that contains ``tick``."""

		if self.columns <= 0 or self.sequence.total_ticks <= 0:
			return 0

		ticks_per_slot = self.sequence.total_ticks / self.columns
		return min(self.columns - 1, int(tick / ticks_per_slot))

	def _render (self) -> typing.List[str]:

		if self.columns <= 0 or not self.sequence.notes:
			return []

		grid: typing.Dict[int, typing.List[int]] = {}
		ticks_per_slot = self.sequence.total_ticks / self.columns

		for note in self.sequence.notes:

			row = grid.setdefault(note.pitch, [0] * self.columns)
			slot = self.slot_for_tick(note.start_tick)

			if note.velocity > row[slot]:
				row[slot] = note.velocity

			for s in range(slot + 1, self.columns):
				if s * ticks_per_slot >= note.end_tick:
					break
				if row[s] == 0:
					row[s] = _SUSTAIN

		pitches = sorted(grid, reverse=True)[:_MAX_ROWS]
		lines: typing.List[str] = []

		for pitch in pitches:
			label = seedmidi.notes.note_name(pitch)[:_LABEL_WIDTH].ljust(_LABEL_WIDTH)
			cells = " ".join(self.velocity_char(v) for v in grid[pitch])
			lines.append(f"  {label}|{cells}|")

		return lines

	def playhead_line (self, tick: int) -> str:

		"""A row with ``^`` under the column containing ``tick``."""

		cells = [" "] * (self.columns * 2 - 1)
		cells[self.slot_for_tick(tick) * 2] = "^"
		return f"  {' ' * _LABEL_WIDTH}|{''.join(cells)}|"


def fit_columns (term_width: int) -> int:

	"""How many piano-roll columns fit in ``term_width`` characters."""

	overhead = 2 + _LABEL_WIDTH + 2
	available = term_width - overhead

	if available <= 0:
		return 0

	return min(_MAX_GRID_COLUMNS, (available + 1) // 2)


class DisplayLogHandler (logging.Handler):

	"""Logging handler that clears and redraws the dashboard around log output."""

	def __init__ (self, display: "Display") -> None:

		super().__init__()
		self._display = display

	def emit (self, record: logging.LogRecord) -> None:

		try:
			self._display.clear_line()

			msg = self.format(record)
			sys.stderr.write(msg + "\n")
			sys.stderr.flush()

			self._display.draw()

		except Exception:
			self.handleError(record)


class Display:

	"""Status line plus optional piano roll, drawn to stderr.

	Call :meth:`update` as often as you like (the session calls it about 20
	times a second); the terminal is only rewritten when something changed.
	"""

	def __init__ (self, scheduler: "PlaybackScheduler", roll: bool = True) -> None:

		self._scheduler = scheduler
		self._roll_enabled = roll
		self._roll: typing.Optional[PianoRoll] = None
		self._active: bool = False
		self._handler: typing.Optional[DisplayLogHandler] = None
		self._saved_handlers: typing.List[logging.Handler] = []
		self._lines: typing.List[str] = []
		self._drawn_line_count: int = 0

	def start (self) -> None:

		"""Swap the root log handlers for a ``DisplayLogHandler``."""

		if self._active:
			return

		self._active = True

		root_logger = logging.getLogger()
		self._saved_handlers = list(root_logger.handlers)
		self._handler = DisplayLogHandler(self)

		if self._saved_handlers and self._saved_handlers[0].formatter:
			self._handler.setFormatter(self._saved_handlers[0].formatter)
		else:
			self._handler.setFormatter(logging.Formatter("%(levelname)s:%(name)s:%(message)s"))

		root_logger.handlers.clear()
		root_logger.addHandler(self._handler)

	def stop (self) -> None:

		"""Clear the dashboard and restore the original log handlers."""

		if not self._active:
			return

		self.clear_line()
		self._active = False

		root_logger = logging.getLogger()
		root_logger.handlers.clear()

		for handler in self._saved_handlers:
			root_logger.addHandler(handler)

		self._saved_handlers = []
		self._handler = None

	def update (self) -> None:

		"""Rebuild the dashboard from the scheduler and redraw it if it changed."""

		if not self._active:
			return

		lines = self.render()

		if lines != self._lines:

			if len(lines) != len(self._lines):
				self.clear_line()

			self._lines = lines
			self.draw()

	def render (self) -> typing.List[str]:

		"""Return the dashboard lines for the current scheduler state."""

		state, sequence = self._scheduler.snapshot()
		lines: typing.List[str] = []

		if self._roll_enabled:

			if self._roll is None or self._roll.sequence is not sequence:
				term_width = shutil.get_terminal_size(fallback=(80, 24)).columns
				columns = fit_columns(term_width) if term_width >= _MIN_TERMINAL_WIDTH else 0
				self._roll = PianoRoll(sequence, columns)

			if self._roll.lines:
				lines.extend(self._roll.lines)
				lines.append(self._roll.playhead_line(state.current_tick))

		lines.append(self.format_status(state, sequence))

		return lines

	def format_status (self, state: "PlaybackState", sequence: seedmidi.generator.Sequence) -> str:

		"""Build the status string: seed, tempo, scale, root, bar.beat and play state."""

		parts: typing.List[str] = [
			f"Seed: 0x{sequence.seed:X}",
			f"{sequence.bpm} BPM",
			sequence.scale,
			f"Root: {seedmidi.notes.note_name(sequence.root_pitch)}",
		]

		ticks_per_beat = max(1, sequence.ticks_per_quarter)
		beat_index = state.current_tick // ticks_per_beat
		beats_per_bar = seedmidi.constants.STEPS_PER_BAR // seedmidi.constants.STEPS_PER_BEAT
		parts.append(f"Bar: {beat_index // beats_per_bar + 1}.{beat_index % beats_per_bar + 1}")

		parts.append("[PLAYING]" if state.is_playing else "[STOPPED]")

		if not self._scheduler.sink_available:
			parts.append("(no MIDI output)")

		return "  ".join(parts)

	def draw (self) -> None:

		"""Write the current dashboard, overwriting the previous one."""

		if not self._active or not self._lines:
			return

		if self._drawn_line_count > 1:
			sys.stderr.write(f"\033[{self._drawn_line_count - 1}A")

		for line in self._lines[:-1]:
			sys.stderr.write(f"\r\033[K{line}\n")

		# Status line (no trailing newline - cursor stays on this line).
		sys.stderr.write(f"\r\033[K{self._lines[-1]}")
		sys.stderr.flush()

		self._drawn_line_count = len(self._lines)

	def clear_line (self) -> None:

		"""Erase the dashboard region from the terminal."""

		if not self._active:
			return

		if self._drawn_line_count > 1:
			sys.stderr.write(f"\033[{self._drawn_line_count - 1}A")

			for _ in range(self._drawn_line_count):
				sys.stderr.write("\r\033[K\n")

			sys.stderr.write(f"\033[{self._drawn_line_count}A")
		else:
			sys.stderr.write("\r\033[K")

		sys.stderr.flush()
		self._drawn_line_count = 0
