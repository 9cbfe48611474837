"""MIDI and generator constants.

The generator works on a fixed sixteenth-note grid in 4/4 time:

- `STEPS_PER_BAR = 16`: one step is a sixteenth note
- `STEPS_PER_BEAT = 4`: a step that is a multiple of this lands on a quarter-note downbeat

Tick resolution is not fixed here. It comes from the configured
ticks-per-quarter value, and one step is `ticks_per_quarter // 4` ticks.
"""

# Grid

STEPS_PER_BAR = 16
STEPS_PER_BEAT = 4

# Channel voice status nibbles (OR with the channel number)

NOTE_OFF = 0x80
NOTE_ON = 0x90
PROGRAM_CHANGE = 0xC0

# Value ranges

MIDI_MAX = 127
MAX_CHANNEL = 15
# Metrical division is 15 bits; the top bit of the header field flags SMPTE timing.
MAX_TICKS_PER_QUARTER = 0x7FFF
MAX_SEED = 2 ** 64 - 1

# The tempo meta event stores microseconds per quarter note in three bytes.
MAX_TEMPO = 0xFFFFFF
MICROSECONDS_PER_MINUTE = 60_000_000

# Defaults

DEFAULT_SEED = 0xC0FFEE
DEFAULT_BPM = 120
DEFAULT_BARS = 16
DEFAULT_TICKS_PER_QUARTER = 480
DEFAULT_ROOT = 60
DEFAULT_SCALE = "minor_pentatonic"
DEFAULT_CHANNEL = 0
DEFAULT_PROGRAM = 0

# Generator probabilities, all out of 100

REST_THRESHOLD = 55
STEPWISE_THRESHOLD = 65
OCTAVE_UP_THRESHOLD = 10
OCTAVE_DOWN_THRESHOLD = 15
VELOCITY_LOW = 55
VELOCITY_HIGH = 95
ACCENT = 18

ANCHOR_DEGREE_WEIGHTS = [(0, 30), (1, 15), (2, 30), (3, 15), (4, 10)]
DURATION_WEIGHTS = [(1, 40), (2, 30), (3, 10), (4, 20)]
