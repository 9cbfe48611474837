"""Real-time playback of a generated sequence.

``PlaybackScheduler`` replays a ``Sequence`` tick by tick on one background
thread, sending raw note-on/note-off messages to a sink (usually a
``seedmidi.midi_utils.PortSink``). The sequence loops while playing.

State shared with the control surface (``is_playing``, ``current_tick`` and
the active sequence) lives behind a single lock. Views read it through
:meth:`PlaybackScheduler.snapshot`. The only mutators are :meth:`toggle`,
:meth:`play`, :meth:`stop` and :meth:`regenerate`.

Example::

	scheduler = PlaybackScheduler(config, sink=seedmidi.midi_utils.open_sink())
	scheduler.start()
	scheduler.play()
	...
	scheduler.regenerate()   # new random seed, playback stops at tick 0
	scheduler.shutdown()
"""

import collections
import dataclasses
import logging
import random
import threading
import time
import typing

import seedmidi.config
import seedmidi.constants
import seedmidi.generator
import seedmidi.midi_utils


logger = logging.getLogger(__name__)

# How often a stopped loop rechecks the play flag.
IDLE_POLL_SECONDS = 0.05

# (status nibble, pitch, velocity), note-offs listed before note-ons.
Cue = typing.Tuple[int, int, int]


@dataclasses.dataclass
class PlaybackState:

	"""
	Play flag and playhead position shared by the control surface and the loop.
	"""

	is_playing: bool = False
	current_tick: int = 0


def build_cues (sequence: seedmidi.generator.Sequence) -> typing.Dict[int, typing.List[Cue]]:

	"""Index a sequence's note boundaries by tick.

	Each tick maps to its note-offs followed by its note-ons. A note ending
	exactly at ``total_ticks`` is released at tick 0, ahead of the notes that
	start the next pass.
	"""

	offs: typing.Dict[int, typing.List[Cue]] = {}
	ons: typing.Dict[int, typing.List[Cue]] = {}

	for note in sequence.notes:

		end_tick = note.end_tick

		if sequence.total_ticks > 0 and end_tick >= sequence.total_ticks:
			end_tick = 0

		ons.setdefault(note.start_tick, []).append((seedmidi.constants.NOTE_ON, note.pitch, note.velocity))
		offs.setdefault(end_tick, []).append((seedmidi.constants.NOTE_OFF, note.pitch, 0))

	cues: typing.Dict[int, typing.List[Cue]] = {}

	for tick in sorted(set(offs) | set(ons)):
		cues[tick] = offs.get(tick, []) + ons.get(tick, [])

	return cues


def seconds_per_tick (sequence: seedmidi.generator.Sequence) -> float:

	"""Real-time length of one tick at the sequence's tempo and resolution."""

	return sequence.microseconds_per_quarter / sequence.ticks_per_quarter / 1_000_000


class PlaybackScheduler:

	"""Loops a sequence in real time on a background thread.

	Regeneration follows a stop, swap, resume protocol. The new sequence is
	generated outside the lock, then swapped in together with
	``is_playing = False`` and ``current_tick = 0`` in one critical section,
	so the loop always sees either the old snapshot or the new one. Notes
	still sounding from the old sequence are released by the loop before it
	reads the new one.

	A missing sink is not an error. The scheduler logs a warning, reports
	``sink_available == False`` and keeps time without sending anything.
	"""

	def __init__ (
		self,
		config: seedmidi.config.GeneratorConfig,
		sink: typing.Optional[seedmidi.midi_utils.MidiSink] = None,
		sequence: typing.Optional[seedmidi.generator.Sequence] = None
	) -> None:

		"""Prepare the scheduler. Nothing runs until :meth:`start`.

		Parameters:
			config: Generation parameters; also supplies the MIDI channel.
			sink: Destination for raw note messages, or None to play silently.
			sequence: Sequence to play. Generated from ``config`` when omitted.
		"""

		self._lock = threading.Lock()
		self._shutdown_event = threading.Event()
		self._thread: typing.Optional[threading.Thread] = None

		self._config = config
		self._sequence = sequence if sequence is not None else seedmidi.generator.generate_sequence(config)
		self._cues = build_cues(self._sequence)
		self._generation = 0
		self._state = PlaybackState()

		self._sink = sink
		# Outstanding note-ons per pitch. Overlapping notes of one pitch each
		# count, so every note-on gets its own note-off.
		self._active_notes: typing.Counter[int] = collections.Counter()
		# Guards _active_notes and the sends that change it.
		self._notes_lock = threading.Lock()

	# ------------------------------------------------------------------
	# Read access for views
	# ------------------------------------------------------------------

	@property
	def sink_available (self) -> bool:

		return self._sink is not None

	@property
	def running (self) -> bool:

		"""True while the playback thread is alive."""

		return self._thread is not None and self._thread.is_alive()

	@property
	def config (self) -> seedmidi.config.GeneratorConfig:

		with self._lock:
			return self._config

	@property
	def sequence (self) -> seedmidi.generator.Sequence:

		with self._lock:
			return self._sequence

	@property
	def seed (self) -> int:

		return self.sequence.seed

	@property
	def is_playing (self) -> bool:

		with self._lock:
			return self._state.is_playing

	@property
	def current_tick (self) -> int:

		with self._lock:
			return self._state.current_tick

	def snapshot (self) -> typing.Tuple[PlaybackState, seedmidi.generator.Sequence]:

		"""Return a copy of the playback state and the active sequence, read together."""

		with self._lock:
			return dataclasses.replace(self._state), self._sequence

	# ------------------------------------------------------------------
	# Control
	# ------------------------------------------------------------------

	def play (self) -> None:

		"""Start playing from tick 0."""

		with self._lock:
			self._play_locked()

	def stop (self) -> None:

		"""Pause playback. The playhead stays where it is."""

		with self._lock:
			self._state.is_playing = False

	def toggle (self) -> bool:

		"""Flip between playing and stopped. Returns the new play state."""

		with self._lock:

			if self._state.is_playing:
				self._state.is_playing = False
			else:
				self._play_locked()

			return self._state.is_playing

	def _play_locked (self) -> None:

		# Caller holds self._lock.
		if self._sequence.total_ticks <= 0:
			logger.warning("Sequence has no length at this resolution - nothing to play")
			return

		self._state.is_playing = True
		self._state.current_tick = 0

	def regenerate (self, seed: typing.Optional[int] = None) -> seedmidi.generator.Sequence:

		"""Generate a new sequence and make it the active one.

		Parameters:
			seed: Seed for the new sequence. A random 64-bit seed when omitted.

		Returns:
			The newly active sequence. Playback is stopped at tick 0.
		"""

		if seed is None:
			seed = random.getrandbits(64)

		with self._lock:
			config = self._config.with_seed(seed)

		sequence = seedmidi.generator.generate_sequence(config)
		cues = build_cues(sequence)

		with self._lock:
			self._config = config
			self._sequence = sequence
			self._cues = cues
			self._generation += 1
			self._state.is_playing = False
			self._state.current_tick = 0

		logger.info(f"Regenerated sequence with seed {seed:#x} ({len(sequence.notes)} notes)")

		return sequence

	# ------------------------------------------------------------------
	# Thread lifecycle
	# ------------------------------------------------------------------

	def start (self) -> None:

		"""Start the playback thread. Safe to call more than once."""

		if self.running:
			return

		if self._sink is None:
			logger.warning("No MIDI output available - playback will run silently")

		self._shutdown_event.clear()
		self._thread = threading.Thread(
			target = self._run,
			name   = "seedmidi-playback",
			daemon = True,
		)
		self._thread.start()

		logger.info("Playback thread started")

	def shutdown (self, timeout: float = 1.0) -> None:

		"""Stop the playback thread, release sounding notes and close the sink.

		The loop checks the shutdown signal once per tick (and during every
		sleep), so it exits within one tick or one idle poll. If it is still
		alive after ``timeout`` the release still happens here. The notes lock
		keeps it from interleaving with a tick, and the loop sends no new
		note-ons once the shutdown signal is set.
		"""

		self._shutdown_event.set()

		if self._thread is not None and self._thread is not threading.current_thread():
			self._thread.join(timeout)

			if self._thread.is_alive():
				logger.warning("Playback thread did not stop within the timeout")

		self._thread = None
		self._release_notes()

		if self._sink is not None:
			self._sink.close()
			self._sink = None

		logger.info("Playback stopped")

	def __enter__ (self) -> "PlaybackScheduler":

		self.start()
		return self

	def __exit__ (self, *exc_info: typing.Any) -> None:

		self.shutdown()

	# ------------------------------------------------------------------
	# Loop
	# ------------------------------------------------------------------

	def _run (self) -> None:

		"""Thread target: one iteration per tick while playing, idle polling while stopped."""

		seen_generation = self._generation
		next_tick_time: typing.Optional[float] = None

		while not self._shutdown_event.is_set():

			with self._lock:
				playing = self._state.is_playing
				tick = self._state.current_tick
				sequence = self._sequence
				cues = self._cues
				generation = self._generation

			if generation != seen_generation or not playing:
				self._release_notes()
				seen_generation = generation

			if not playing:
				next_tick_time = None
				self._shutdown_event.wait(IDLE_POLL_SECONDS)
				continue

			self._process_tick(cues, tick)

			with self._lock:
				# Leave the playhead alone if play() or regenerate() reset it meanwhile.
				if self._generation == generation and self._state.current_tick == tick:
					self._state.current_tick = tick + 1

					if self._state.current_tick >= sequence.total_ticks:
						self._state.current_tick = 0

			# Deadlines accumulate from the first tick so sleep overshoot does not drift.
			if next_tick_time is None:
				next_tick_time = time.perf_counter()

			next_tick_time += seconds_per_tick(sequence)
			sleep_time = next_tick_time - time.perf_counter()

			if sleep_time > 0:
				self._shutdown_event.wait(sleep_time)

		self._release_notes()

	def _process_tick (self, cues: typing.Dict[int, typing.List[Cue]], tick: int) -> None:

		"""Send the note-offs then the note-ons scheduled at ``tick``.

		A note-off is only sent while its pitch has an outstanding note-on,
		so the release of a final note at tick 0 is skipped on the first pass.
		"""

		with self._notes_lock:

			if self._shutdown_event.is_set():
				return

			for status, pitch, velocity in cues.get(tick, ()):

				if status == seedmidi.constants.NOTE_OFF:
					if self._active_notes[pitch] <= 0:
						continue
					self._active_notes[pitch] -= 1
					if self._active_notes[pitch] == 0:
						del self._active_notes[pitch]
				else:
					self._active_notes[pitch] += 1

				self._send(status, pitch, velocity)

	def _release_notes (self) -> None:

		"""Send one note-off for every note-on still outstanding."""

		with self._notes_lock:

			for pitch in sorted(self._active_notes):
				for _ in range(self._active_notes[pitch]):
					self._send(seedmidi.constants.NOTE_OFF, pitch, 0)

			self._active_notes.clear()

	def _send (self, status: int, pitch: int, velocity: int) -> None:

		if self._sink is None:
			return

		try:
			self._sink.send([status | self._config.channel, pitch, velocity])
		except Exception:
			logger.exception("Failed to send note to the MIDI sink")
