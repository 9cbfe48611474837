"""Command line interface.

```
seedmidi --seed 42 --bpm 96 --bars 8 --root A3 --scale natural_minor -o out/a_minor.mid
seedmidi --config seedmidi.yaml --play
```

Flags override values from ``--config``, which override the defaults.
"""

import argparse
import datetime
import logging
import typing

import seedmidi.config
import seedmidi.constants
import seedmidi.encoder
import seedmidi.generator
import seedmidi.notes
import seedmidi.scales


logger = logging.getLogger(__name__)


def default_out_path (seed: int, now: typing.Optional[datetime.datetime] = None) -> str:

	"""Timestamped output path, e.g. ``out/seeded_20260101_120000_12648430.mid``."""

	now = now or datetime.datetime.now()
	return f"out/seeded_{now.strftime('%Y%m%d_%H%M%S')}_{seed}.mid"


def _seed (text: str) -> int:

	"""Parse a seed in decimal or ``0x`` hexadecimal."""

	try:
		return int(text, 0)
	except ValueError:
		raise argparse.ArgumentTypeError(f"invalid seed: {text!r}") from None


def _note (text: str) -> int:

	try:
		return seedmidi.notes.parse_note(text)
	except ValueError as e:
		raise argparse.ArgumentTypeError(str(e)) from None


def _scale (text: str) -> str:

	try:
		return seedmidi.scales.normalize_scale_name(text)
	except ValueError as e:
		raise argparse.ArgumentTypeError(str(e)) from None


def build_parser () -> argparse.ArgumentParser:

	parser = argparse.ArgumentParser(prog="seedmidi", description="Seeded random MIDI (format 0) generator")

	parser.add_argument("-o", "--out", help="Output .mid path (default: timestamped file under out/)")
	parser.add_argument("--seed", type=_seed, help=f"RNG seed, same seed gives the same MIDI (default: {seedmidi.constants.DEFAULT_SEED:#x})")
	parser.add_argument("--bpm", type=int, help=f"Tempo in BPM (default: {seedmidi.constants.DEFAULT_BPM})")
	parser.add_argument("--bars", type=int, help=f"Number of 4/4 bars (default: {seedmidi.constants.DEFAULT_BARS})")
	parser.add_argument("--ppqn", type=int, dest="ticks_per_quarter", help=f"Ticks per quarter note (default: {seedmidi.constants.DEFAULT_TICKS_PER_QUARTER})")
	parser.add_argument("--root", type=_note, dest="root_pitch", help="Root note in scientific pitch notation, e.g. C4, A3, F#5, Db2 (default: C4)")
	parser.add_argument("--scale", type=_scale, help=f"One of {', '.join(seedmidi.scales.SCALE_NAMES)} (default: {seedmidi.constants.DEFAULT_SCALE})")
	parser.add_argument("--channel", type=int, help="MIDI channel 0-15 (default: 0)")
	parser.add_argument("--program", type=int, help="Program 0-127, 0 = Acoustic Grand Piano in General MIDI (default: 0)")
	parser.add_argument("--config", help="YAML file with any of: seed, bpm, bars, ppqn, root, scale, channel, program")
	parser.add_argument("--play", action="store_true", help="Play the sequence live on a MIDI output instead of writing a file")
	parser.add_argument("--device", help="MIDI output device name for --play (default: auto-discover)")
	parser.add_argument("--no-roll", action="store_true", help="Hide the piano roll in --play mode")
	parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

	return parser


def main (argv: typing.Optional[typing.List[str]] = None) -> int:

	"""
	Entry point for the ``seedmidi`` command.
	"""

	parser = build_parser()
	args = parser.parse_args(argv)

	logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

	try:
		mapping = seedmidi.config.load_config(args.config) if args.config else {}
		config = seedmidi.config.config_from_mapping(
			mapping,
			seed = args.seed,
			bpm = args.bpm,
			bars = args.bars,
			ticks_per_quarter = args.ticks_per_quarter,
			root_pitch = args.root_pitch,
			scale = args.scale,
			channel = args.channel,
			program = args.program
		)
	except seedmidi.config.ConfigError as e:
		parser.error(str(e))

	if args.play:
		# Imported here so file generation never needs the terminal machinery.
		import seedmidi.session as session  # noqa: PLC0415

		session.run_session(
			config,
			out_path_for = lambda seed: args.out or default_out_path(seed),
			device_name = args.device,
			roll = not args.no_roll
		)
		return 0

	sequence = seedmidi.generator.generate_sequence(config)
	out_path = args.out or default_out_path(config.seed)

	try:
		seedmidi.encoder.write_midi_file(sequence, out_path, channel=config.channel, program=config.program)
	except OSError as e:
		logger.error(f"Failed to write {out_path}: {e}")
		return 1

	logger.info(f"Wrote {out_path}")

	return 0
