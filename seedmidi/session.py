"""Interactive playback session.

Wires a ``PlaybackScheduler`` to a MIDI output, the keystroke listener and
the terminal display. Keys:

- ``space`` / ``p``: play / stop
- ``r``: regenerate with a new random seed
- ``w``: write the current sequence to a MIDI file
- ``q``: quit
"""

import logging
import sys
import time
import typing

import seedmidi.config
import seedmidi.display
import seedmidi.encoder
import seedmidi.keystroke
import seedmidi.midi_utils
import seedmidi.playback


logger = logging.getLogger(__name__)

POLL_SECONDS = 0.05

HELP_TEXT = "Keys: [space] play/stop  [r] regenerate  [w] write file  [q] quit"

# Every key handle_key responds to.
KEYS = (" ", "p", "r", "w", "q", "Q")


def handle_key (key: str, scheduler: seedmidi.playback.PlaybackScheduler, out_path_for: typing.Callable[[int], str]) -> bool:

	"""Apply one keystroke to the scheduler. Returns False when the session should end."""

	if key in (" ", "p"):
		playing = scheduler.toggle()
		logger.debug("Playing" if playing else "Stopped")

	elif key == "r":
		scheduler.regenerate()

	elif key == "w":
		config = scheduler.config
		sequence = scheduler.sequence
		path = out_path_for(sequence.seed)

		try:
			seedmidi.encoder.write_midi_file(sequence, path, channel=config.channel, program=config.program)
		except OSError as e:
			logger.error(f"Failed to write {path}: {e}")

	elif key in ("q", "Q"):
		return False

	return True


def run_session (
	config: seedmidi.config.GeneratorConfig,
	out_path_for: typing.Callable[[int], str],
	device_name: typing.Optional[str] = None,
	roll: bool = True
) -> None:

	"""Run the live session until the user quits or presses Ctrl+C.

	Parameters:
		config: Parameters for the first sequence.
		out_path_for: Maps a seed to the file path used by the ``w`` key.
		device_name: MIDI output name; auto-discovered when omitted.
		roll: Show the piano roll above the status line.
	"""

	# Only prompt for a device when someone can answer.
	sink = seedmidi.midi_utils.open_sink(device_name, interactive=sys.stdin.isatty())
	scheduler = seedmidi.playback.PlaybackScheduler(config, sink=sink)
	listener = seedmidi.keystroke.KeystrokeListener(KEYS)
	display = seedmidi.display.Display(scheduler, roll=roll)

	logger.info(HELP_TEXT)

	scheduler.start()
	keys_enabled = listener.start()
	display.start()

	try:
		if not keys_enabled:
			# No keyboard control: just play until interrupted.
			scheduler.play()

		running = True

		while running:

			for key in listener.drain():
				if not handle_key(key, scheduler, out_path_for):
					running = False
					break

			display.update()
			time.sleep(POLL_SECONDS)

	except KeyboardInterrupt:
		logger.info("Interrupted")

	finally:
		display.stop()
		listener.stop()
		scheduler.shutdown()
