"""
seedmidi - seeded melody generation to Standard MIDI Files.

Give it a seed and a few musical parameters and it writes a short one-voice
melody as a format 0 MIDI file. The same seed always gives the same file.
It can also loop the melody live on a MIDI output, with keys to start, stop
and reroll the seed.

- **Deterministic.** Every random decision comes from one seeded
  ``random.Random`` in a fixed order, so a seed is a complete description
  of the result.
- **Scale aware.** Major, natural minor, major pentatonic and minor
  pentatonic, built on any root note.
- **Well-formed output.** Note-offs sort before note-ons at shared ticks, deltas
  never go negative and every track ends with End of Track. The file is
  written in one go, never half-finished.
- **Live playback.** A background thread sends notes in real time through
  mido, with a terminal status line and ASCII piano roll.

Minimal example:

    ```python
    import seedmidi

    config = seedmidi.GeneratorConfig(seed=42, bpm=100, bars=8, scale="major")
    sequence = seedmidi.generate_sequence(config)
    seedmidi.write_midi_file(sequence, "out/melody.mid", channel=config.channel, program=config.program)
    ```

Package-level exports: ``GeneratorConfig``, ``ConfigError``, ``generate_sequence``,
``write_midi_file``, ``PlaybackScheduler``.
"""

import seedmidi.config
import seedmidi.encoder
import seedmidi.generator
import seedmidi.playback


ConfigError = seedmidi.config.ConfigError
GeneratorConfig = seedmidi.config.GeneratorConfig
generate_sequence = seedmidi.generator.generate_sequence
write_midi_file = seedmidi.encoder.write_midi_file
PlaybackScheduler = seedmidi.playback.PlaybackScheduler
