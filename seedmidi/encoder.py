"""Standard MIDI File encoding.

Turns a ``Sequence`` into a format 0 (single track) MIDI file. Events are
collected with absolute ticks, sorted, converted to delta times and closed
with an End of Track meta event::

	delta 0   set_tempo        (microseconds per quarter)
	delta 0   program_change
	...       note_on / note_off pairs
	delta 0   end_of_track

When several events share a tick, note-offs sort before note-ons, so a note
ending exactly where the next one starts is released before it is retriggered.
"""

import dataclasses
import io
import logging
import os
import pathlib
import typing

import mido

import seedmidi.constants
import seedmidi.generator


logger = logging.getLogger(__name__)


# Tie-break rank for events at the same tick.
EVENT_RANK: typing.Dict[str, int] = {
	"note_off": 0,
	"note_on": 1,
	"program_change": 2,
	"tempo": 3,
	"end_of_track": 3,
	"sysex": 4,
}


@dataclasses.dataclass
class TrackEvent:

	"""
	A track event positioned at an absolute tick, before delta encoding.
	"""

	tick: int
	kind: str
	pitch: int = 0
	velocity: int = 0
	value: int = 0

	@property
	def rank (self) -> int:

		return EVENT_RANK.get(self.kind, 2)


def tempo_for_bpm (bpm: int) -> int:

	"""Microseconds per quarter note for ``bpm`` (a bpm below 1 is treated as 1)."""

	return seedmidi.constants.MICROSECONDS_PER_MINUTE // max(bpm, 1)


def build_track_events (sequence: seedmidi.generator.Sequence, program: int = 0) -> typing.List[TrackEvent]:

	"""Collect the tempo, program change and note events in playback order.

	Tempo and program change always lead the track, so the first note already
	sounds with the right program. Note events follow, sorted by tick and then
	by rank. The sort is stable, so events with equal tick and rank keep
	generation order.
	"""

	setup: typing.List[TrackEvent] = [
		TrackEvent(tick=0, kind="tempo", value=tempo_for_bpm(sequence.bpm)),
		TrackEvent(tick=0, kind="program_change", value=program),
	]

	notes: typing.List[TrackEvent] = []

	for note in sequence.notes:
		notes.append(TrackEvent(tick=note.start_tick, kind="note_on", pitch=note.pitch, velocity=note.velocity))
		notes.append(TrackEvent(tick=note.end_tick, kind="note_off", pitch=note.pitch, velocity=0))

	notes.sort(key=lambda event: (event.tick, event.rank))

	return setup + notes


def to_delta_times (events: typing.Iterable[TrackEvent]) -> typing.List[typing.Tuple[int, TrackEvent]]:

	"""Pair each event with its delta from the previous event (never negative)."""

	result: typing.List[typing.Tuple[int, TrackEvent]] = []
	last_tick = 0

	for event in events:
		delta = max(0, event.tick - last_tick)
		last_tick = event.tick
		result.append((delta, event))

	return result


def _to_message (event: TrackEvent, delta: int, channel: int) -> typing.Union[mido.Message, mido.MetaMessage]:

	"""Convert one track event to a mido message carrying ``delta`` as its time."""

	if event.kind == "tempo":

		tempo = event.value

		if tempo > seedmidi.constants.MAX_TEMPO:
			logger.warning(f"Tempo {tempo} us/quarter does not fit a tempo event, writing {seedmidi.constants.MAX_TEMPO}")
			tempo = seedmidi.constants.MAX_TEMPO

		return mido.MetaMessage('set_tempo', tempo=tempo, time=delta)

	if event.kind == "program_change":
		return mido.Message('program_change', channel=channel, program=event.value, time=delta)

	if event.kind in ("note_on", "note_off"):
		return mido.Message(event.kind, channel=channel, note=event.pitch, velocity=event.velocity, time=delta)

	if event.kind == "end_of_track":
		return mido.MetaMessage('end_of_track', time=delta)

	raise ValueError(f"Unsupported track event kind {event.kind!r}")


def encode_track (sequence: seedmidi.generator.Sequence, channel: int = 0, program: int = 0) -> mido.MidiTrack:

	"""Build the delta-timed track for ``sequence``, ending with End of Track."""

	track = mido.MidiTrack()

	for delta, event in to_delta_times(build_track_events(sequence, program)):
		track.append(_to_message(event, delta, channel))

	track.append(_to_message(TrackEvent(tick=sequence.total_ticks, kind="end_of_track"), 0, channel))

	return track


def encode_midi_file (sequence: seedmidi.generator.Sequence, channel: int = 0, program: int = 0) -> mido.MidiFile:

	"""Wrap the encoded track in a single-track (type 0) ``MidiFile``."""

	mid = mido.MidiFile(type=0, ticks_per_beat=sequence.ticks_per_quarter)
	mid.tracks.append(encode_track(sequence, channel, program))

	return mid


def encode_bytes (sequence: seedmidi.generator.Sequence, channel: int = 0, program: int = 0) -> bytes:

	"""Return the complete MIDI file as bytes."""

	buffer = io.BytesIO()
	encode_midi_file(sequence, channel, program).save(file=buffer)

	return buffer.getvalue()


def write_midi_file (sequence: seedmidi.generator.Sequence, path: typing.Union[str, os.PathLike], channel: int = 0, program: int = 0) -> pathlib.Path:

	"""Encode ``sequence`` and write it to ``path`` in a single write.

	The byte stream is built completely before the file is opened, so an
	encoding failure never leaves a truncated file behind. Missing parent
	directories are created. I/O errors propagate to the caller.
	"""

	data = encode_bytes(sequence, channel, program)

	out_path = pathlib.Path(path)

	if out_path.parent != pathlib.Path(""):
		out_path.parent.mkdir(parents=True, exist_ok=True)

	out_path.write_bytes(data)

	logger.info(f"Saved {out_path} ({len(sequence.notes)} notes, {len(data)} bytes)")

	return out_path
