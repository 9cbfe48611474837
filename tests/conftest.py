import collections
import threading
import typing

import mido
import pytest


class FakeMidiOut:

	"""MIDI output stub that remembers what it was sent."""

	def __init__ (self, name: str = "Dummy MIDI") -> None:

		self.name = name
		self.sent: typing.List[mido.Message] = []
		self.closed = False

	def send (self, message: mido.Message) -> None:

		self.sent.append(message)

	def close (self) -> None:

		self.closed = True


class RecordingSink:

	"""Raw-bytes sink for scheduler tests. Thread safe, since the playback thread writes to it."""

	def __init__ (self) -> None:

		self._lock = threading.Lock()
		self._messages: typing.List[typing.Tuple[int, int, int]] = []
		self.closed = False

	def send (self, raw: typing.Sequence[int]) -> None:

		status, pitch, velocity = raw

		with self._lock:
			self._messages.append((status, pitch, velocity))

	def close (self) -> None:

		self.closed = True

	@property
	def messages (self) -> typing.List[typing.Tuple[int, int, int]]:

		with self._lock:
			return list(self._messages)

	def sounding (self) -> typing.Set[int]:

		"""Pitches with more note-ons than note-offs after replaying every message."""

		counts: typing.Counter[int] = collections.Counter()

		for status, pitch, _ in self.messages:
			counts[pitch] += 1 if status & 0xF0 == 0x90 else -1

		return {pitch for pitch, count in counts.items() if count > 0}


# Module-level reference so tests can inspect the most recently opened port.
_last_fake_output: typing.Optional[FakeMidiOut] = None


def _fake_get_output_names () -> typing.List[str]:

	"""Return a fixed list of MIDI output names for tests."""

	return ["Dummy MIDI"]


def _fake_open_output (name: str) -> FakeMidiOut:

	"""Return a fake MIDI output regardless of the name."""

	global _last_fake_output
	_last_fake_output = FakeMidiOut(name)
	return _last_fake_output


@pytest.fixture
def patch_midi (monkeypatch: pytest.MonkeyPatch) -> None:

	"""Patch mido to use a fake MIDI output for tests that open ports."""

	monkeypatch.setattr(mido, "get_output_names", _fake_get_output_names)
	monkeypatch.setattr(mido, "open_output", _fake_open_output)


@pytest.fixture
def sink () -> RecordingSink:

	"""A fresh recording sink."""

	return RecordingSink()
