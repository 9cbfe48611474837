"""Single-key input for the live session.

``KeystrokeListener`` reads stdin one character at a time on a daemon thread
and queues the characters the session has bindings for. Anything else is
dropped, so a stray key never reaches the scheduler.

Reading single keys needs :mod:`termios` (Linux, macOS) and a terminal on
stdin. Without them :meth:`KeystrokeListener.start` logs why, returns False
and the session falls back to playing until Ctrl+C.
"""

import logging
import os
import queue
import select
import sys
import threading
import typing


logger = logging.getLogger(__name__)

# How long one wait for input lasts before the stop flag is rechecked.
_READ_TIMEOUT = 0.1


def unavailable_reason () -> typing.Optional[str]:

	"""Return why single-key input cannot work here, or None when it can."""

	try:
		import termios  # noqa: PLC0415
	except ImportError:
		return "single-key input needs termios (Linux or macOS)"

	try:
		if not sys.stdin.isatty():
			return "stdin is not a terminal"
		termios.tcgetattr(sys.stdin.fileno())
	except (termios.error, OSError, ValueError) as e:
		return f"cannot read the terminal settings ({e})"

	return None


class KeystrokeListener:

	"""Queues bound keypresses from stdin.

	Parameters:
		keys: The characters to pass on. Others are ignored.

	:meth:`stop` waits for the reader thread, which puts the terminal back in
	its original mode before exiting.
	"""

	def __init__ (self, keys: typing.Iterable[str]) -> None:

		self.keys = frozenset(keys)
		self.active = False

		self._queue: "queue.Queue[str]" = queue.Queue()
		self._stop_event = threading.Event()
		self._thread: typing.Optional[threading.Thread] = None

	def start (self) -> bool:

		"""Start reading keys. Returns False (after a warning) when input is unavailable."""

		if self.active:
			return True

		reason = unavailable_reason()

		if reason is not None:
			logger.warning(f"Keyboard controls are disabled: {reason}")
			return False

		self._stop_event.clear()
		self.active = True
		self._thread = threading.Thread(
			target = self._read_keys,
			name   = "seedmidi-keys",
			daemon = True,
		)
		self._thread.start()

		return True

	def stop (self, timeout: float = 0.5) -> None:

		self._stop_event.set()

		if self._thread is not None:
			self._thread.join(timeout)
			self._thread = None

		self.active = False

	def feed (self, char: str) -> None:

		"""Queue ``char`` if it is one of the bound keys."""

		if char in self.keys:
			self._queue.put(char)
		elif char:
			logger.debug(f"Ignoring unbound key {char!r}")

	def drain (self) -> typing.List[str]:

		"""Bound keys pressed since the last call, oldest first."""

		keys: typing.List[str] = []

		while True:
			try:
				keys.append(self._queue.get_nowait())
			except queue.Empty:
				return keys

	def _read_keys (self) -> None:

		import termios  # noqa: PLC0415
		import tty      # noqa: PLC0415

		fd = sys.stdin.fileno()
		saved_mode = termios.tcgetattr(fd)

		try:
			# cbreak keeps Ctrl+C working, raw mode would swallow it.
			tty.setcbreak(fd)

			while not self._stop_event.is_set():
				readable, _, _ = select.select([fd], [], [], _READ_TIMEOUT)

				if readable:
					self.feed(os.read(fd, 1).decode("utf-8", errors="ignore"))

		except Exception:
			logger.exception("Keyboard input stopped after an error")

		finally:
			termios.tcsetattr(fd, termios.TCSADRAIN, saved_mode)
			self.active = False
