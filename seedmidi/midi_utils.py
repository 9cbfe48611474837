import logging
import typing

import mido

logger = logging.getLogger(__name__)


class MidiSink (typing.Protocol):

    """
    Anything that accepts raw 3-byte channel voice messages.
    """

    def send (self, raw: typing.Sequence[int]) -> None:
        ...

    def close (self) -> None:
        ...


class PortSink:

    """Real-time sink that forwards raw messages to a mido output port.

    Sending is fire-and-forget: a failed send is logged and not retried, so a
    disconnected device never stops the playback loop.
    """

    def __init__ (self, port: typing.Any, name: typing.Optional[str] = None) -> None:

        self.port = port
        self.name = name

    def send (self, raw: typing.Sequence[int]) -> None:

        """Send ``[status, data1, data2]`` to the port."""

        try:
            self.port.send(mido.Message.from_bytes(list(raw)))
        except Exception:
            logger.exception("MIDI send failed (device may be disconnected)")

    def close (self) -> None:

        try:
            self.port.close()
        except Exception:
            logger.exception("Failed to close MIDI output")


def choose_output_name (outputs: typing.Sequence[str], device_name: typing.Optional[str] = None, interactive: bool = True) -> typing.Optional[str]:

    """Decide which of ``outputs`` to open, without opening anything.

    An explicit ``device_name`` must be one of the outputs. Otherwise a
    single output is taken as is, and several are offered at a prompt
    (or the first is taken when ``interactive`` is False).
    """

    if not outputs:
        logger.error("No MIDI output devices found.")
        return None

    if device_name is not None:
        if device_name not in outputs:
            logger.error(f"MIDI output device '{device_name}' not found. Available devices: {list(outputs)}")
            return None
        return device_name

    if len(outputs) == 1 or not interactive:
        return outputs[0]

    return _prompt_for_output(outputs)


def _prompt_for_output (outputs: typing.Sequence[str]) -> typing.Optional[str]:

    """Ask on the console which output to use. None if input runs out."""

    print("\nAvailable MIDI output devices:\n")
    for i, name in enumerate(outputs, 1):
        print(f"  {i}. {name}")
    print()

    while True:
        try:
            answer = input(f"Select a device (1-{len(outputs)}): ")
        except EOFError:
            logger.error("No device selected (input closed).")
            return None

        if answer.strip().isdigit() and 1 <= int(answer) <= len(outputs):
            selected = outputs[int(answer) - 1]
            print(f"\nTip: skip this prompt next time with --device \"{selected}\"\n")
            return selected

        print(f"Enter a number between 1 and {len(outputs)}.")


def select_output_device (device_name: typing.Optional[str] = None, interactive: bool = True) -> typing.Tuple[typing.Optional[str], typing.Optional[typing.Any]]:

    """Pick an output with :func:`choose_output_name` and open it.

    Returns:
        ``(name, port)``, or ``(None, None)`` when nothing could be opened.
    """

    try:
        outputs = mido.get_output_names()
    except Exception as e:
        logger.error(f"Could not list MIDI outputs: {e}")
        return None, None

    logger.info(f"Available MIDI outputs: {outputs}")

    name = choose_output_name(outputs, device_name, interactive)

    if name is None:
        return None, None

    try:
        port = mido.open_output(name)
    except Exception as e:
        logger.error(f"Failed to open MIDI output '{name}': {e}")
        return None, None

    logger.info(f"Opened MIDI output: {name}")

    return name, port


def open_sink (device_name: typing.Optional[str] = None, interactive: bool = True) -> typing.Optional[PortSink]:

    """Open an output port and wrap it as a ``PortSink``, or return None if none is available."""

    name, port = select_output_device(device_name, interactive=interactive)

    if port is None:
        return None

    return PortSink(port, name)
