import io
import pathlib
import typing

import mido
import pytest

import seedmidi.config
import seedmidi.encoder
import seedmidi.generator


def _sequence (notes: typing.Iterable[typing.Tuple[int, int, int, int]], bpm: int = 120, ticks_per_quarter: int = 480, total_ticks: int = 1920) -> seedmidi.generator.Sequence:

	"""Build a sequence from (pitch, start, end, velocity) tuples."""

	return seedmidi.generator.Sequence(
		notes = tuple(seedmidi.generator.NoteEvent(*n) for n in notes),
		bpm = bpm,
		ticks_per_quarter = ticks_per_quarter,
		total_ticks = total_ticks
	)


def _absolute (track: mido.MidiTrack) -> typing.List[typing.Tuple[int, typing.Any]]:

	"""Convert a delta-timed track back to (absolute tick, message) pairs."""

	tick = 0
	result = []

	for message in track:
		tick += message.time
		result.append((tick, message))

	return result


def _generated (seed: int = 42, bars: int = 4) -> seedmidi.generator.Sequence:

	config = seedmidi.config.GeneratorConfig(seed=seed, bpm=120, bars=bars, ticks_per_quarter=480)
	return seedmidi.generator.generate_sequence(config)


def test_tempo_for_bpm () -> None:

	"""Microseconds per quarter is floor(60,000,000 / bpm), never dividing by zero."""

	assert seedmidi.encoder.tempo_for_bpm(120) == 500000
	assert seedmidi.encoder.tempo_for_bpm(1) == 60_000_000
	assert seedmidi.encoder.tempo_for_bpm(0) == 60_000_000
	assert seedmidi.encoder.tempo_for_bpm(7) == 8571428


def test_stream_starts_with_tempo_and_program_and_ends_with_end_of_track () -> None:

	"""Tempo then program change at delta 0, End of Track last at delta 0."""

	sequence = seedmidi.generator.generate_sequence(seedmidi.config.GeneratorConfig(seed=5, bpm=120, bars=1, ticks_per_quarter=480))
	track = seedmidi.encoder.encode_track(sequence, channel=2, program=33)

	assert track[0].type == 'set_tempo'
	assert track[0].tempo == 500000
	assert track[0].time == 0

	assert track[1].type == 'program_change'
	assert track[1].program == 33
	assert track[1].channel == 2
	assert track[1].time == 0

	assert track[-1].type == 'end_of_track'
	assert track[-1].time == 0
	assert [m.type for m in track].count('end_of_track') == 1


def test_event_count () -> None:

	"""Tempo + program change + two events per note + End of Track."""

	sequence = _generated()
	track = seedmidi.encoder.encode_track(sequence)

	assert len(track) == 2 + 2 * len(sequence.notes) + 1


def test_note_off_sorts_before_note_on_at_shared_tick () -> None:

	"""A note ending where the next begins is released first."""

	sequence = _sequence([(60, 0, 120, 100), (60, 120, 240, 90)])
	events = seedmidi.encoder.build_track_events(sequence)

	at_120 = [event.kind for event in events if event.tick == 120]

	assert at_120 == ["note_off", "note_on"]


def test_setup_events_lead_even_with_a_note_at_tick_zero () -> None:

	"""Tempo and program change come before a note starting at tick 0."""

	sequence = _sequence([(60, 0, 120, 100)])
	events = seedmidi.encoder.build_track_events(sequence, program=5)

	assert [event.kind for event in events] == ["tempo", "program_change", "note_on", "note_off"]

	track = seedmidi.encoder.encode_track(sequence, program=5)

	assert [(m.type, m.time) for m in track] == [
		('set_tempo', 0),
		('program_change', 0),
		('note_on', 0),
		('note_off', 120),
		('end_of_track', 0),
	]


def test_event_ranks () -> None:

	"""Note-off < note-on < other channel messages < meta < sysex."""

	ranks = [seedmidi.encoder.TrackEvent(tick=0, kind=kind).rank for kind in ("note_off", "note_on", "program_change", "tempo", "sysex")]

	assert ranks == [0, 1, 2, 3, 4]


def test_stable_sort_keeps_generation_order_for_ties () -> None:

	"""Equal tick and rank keep the order notes were generated in."""

	sequence = _sequence([(64, 0, 240, 100), (60, 0, 240, 90)])
	events = seedmidi.encoder.build_track_events(sequence)

	assert [event.pitch for event in events if event.kind == "note_off"] == [64, 60]


def test_absolute_ticks_non_decreasing_and_deltas_non_negative () -> None:

	"""The encoded track is time ordered."""

	for seed in range(10):

		track = seedmidi.encoder.encode_track(_generated(seed=seed))
		ticks = [tick for tick, _ in _absolute(track)]

		assert all(message.time >= 0 for message in track)
		assert ticks == sorted(ticks)


def test_no_note_on_before_matching_note_off_at_same_tick () -> None:

	"""At any tick, a pitch's note-off never follows its note-on."""

	for seed in range(10):

		seen: typing.Dict[typing.Tuple[int, int], str] = {}

		for tick, message in _absolute(seedmidi.encoder.encode_track(_generated(seed=seed))):

			if message.type not in ('note_on', 'note_off'):
				continue

			key = (tick, message.note)

			if message.type == 'note_off':
				assert seen.get(key) != 'note_on'

			seen[key] = message.type


def test_to_delta_times_floors_at_zero () -> None:

	"""An out-of-order event gets delta 0 rather than a negative delta."""

	events = [
		seedmidi.encoder.TrackEvent(tick=100, kind="note_on"),
		seedmidi.encoder.TrackEvent(tick=40, kind="note_off"),
		seedmidi.encoder.TrackEvent(tick=160, kind="note_on"),
	]

	deltas = [delta for delta, _ in seedmidi.encoder.to_delta_times(events)]

	assert deltas == [100, 0, 120]


def test_note_messages_carry_channel_pitch_and_velocity () -> None:

	"""Note-on keeps its velocity; note-off always has velocity 0."""

	sequence = _sequence([(67, 240, 480, 101)])
	track = seedmidi.encoder.encode_track(sequence, channel=9)
	notes = [(tick, m) for tick, m in _absolute(track) if m.type in ('note_on', 'note_off')]

	assert [(tick, m.type, m.channel, m.note, m.velocity) for tick, m in notes] == [
		(240, 'note_on', 9, 67, 101),
		(480, 'note_off', 9, 67, 0),
	]


def test_midi_file_header () -> None:

	"""Single-track format with the sequence's resolution."""

	mid = seedmidi.encoder.encode_midi_file(_sequence([], ticks_per_quarter=96, total_ticks=384))

	assert mid.type == 0
	assert mid.ticks_per_beat == 96
	assert len(mid.tracks) == 1


def test_encoded_bytes_parse_back () -> None:

	"""The byte stream is a valid SMF that reads back with the same events."""

	sequence = _generated(seed=11)
	data = seedmidi.encoder.encode_bytes(sequence, channel=1, program=4)

	assert data[:4] == b"MThd"
	assert data[8:10] == b"\x00\x00"   # format 0
	assert data[10:12] == b"\x00\x01"  # one track
	assert data[12:14] == (480).to_bytes(2, "big")

	mid = mido.MidiFile(file=io.BytesIO(data))
	track = mid.tracks[0]

	assert len(track) == 2 + 2 * len(sequence.notes) + 1
	assert track[0].type == 'set_tempo' and track[0].tempo == 500000
	assert track[1].type == 'program_change' and track[1].program == 4
	assert track[-1].type == 'end_of_track' and track[-1].time == 0


def test_re_encoding_is_byte_identical () -> None:

	"""Encoding the same sequence twice, or a regenerated one, gives the same bytes."""

	first = seedmidi.encoder.encode_bytes(_generated(seed=77))
	second = seedmidi.encoder.encode_bytes(_generated(seed=77))

	assert first == second


def test_minimal_bpm_tempo_is_clamped_in_file (caplog: pytest.LogCaptureFixture) -> None:

	"""bpm=1 is 60,000,000 us/quarter, which the 3-byte tempo field caps at 0xFFFFFF."""

	track = seedmidi.encoder.encode_track(_sequence([], bpm=1))

	assert track[0].tempo == 0xFFFFFF
	assert "does not fit" in caplog.text


def test_empty_sequence () -> None:

	"""A sequence without notes still encodes tempo, program change and End of Track."""

	track = seedmidi.encoder.encode_track(_sequence([]))

	assert [m.type for m in track] == ['set_tempo', 'program_change', 'end_of_track']


def test_write_midi_file_creates_directories (tmp_path: pathlib.Path) -> None:

	"""Parent directories are created and the file holds the encoded bytes."""

	sequence = _generated(seed=3)
	path = tmp_path / "out" / "nested" / "seeded.mid"

	result = seedmidi.encoder.write_midi_file(sequence, path, channel=0, program=0)

	assert result == path
	assert path.read_bytes() == seedmidi.encoder.encode_bytes(sequence)


def test_write_midi_file_io_error_propagates (tmp_path: pathlib.Path) -> None:

	"""A parent path that is a regular file raises OSError."""

	blocker = tmp_path / "blocker"
	blocker.write_text("not a directory")

	with pytest.raises(OSError):
		seedmidi.encoder.write_midi_file(_generated(), blocker / "seeded.mid")


def test_write_midi_file_writes_nothing_when_encoding_fails (tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch) -> None:

	"""Encoding happens before the file is opened."""

	def broken (*args: typing.Any, **kwargs: typing.Any) -> bytes:
		raise RuntimeError("encoder exploded")

	monkeypatch.setattr(seedmidi.encoder, "encode_bytes", broken)
	path = tmp_path / "seeded.mid"

	with pytest.raises(RuntimeError):
		seedmidi.encoder.write_midi_file(_generated(), path)

	assert not path.exists()
