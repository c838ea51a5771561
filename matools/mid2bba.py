"""Re-encode a standard MIDI file into the compact BBA song format."""

from __future__ import annotations

from matools.midi_file import (
    OPCODE_NOTE_OFF,
    OPCODE_NOTE_ON,
    MidiError,
    MidiEvent,
    MidiFile,
    MidiFileReader,
)

TICKS_PER_SECOND = 48
FRAMES_PER_TICK_SHIFT = 8
FRAME_RATE = TICKS_PER_SECOND << FRAMES_PER_TICK_SHIFT

_INT_MAX = 0x7FFFFFFF
_MAX_DELAY_BYTE = 0x7F
_NOTE_LOW = 0x20
_NOTE_HIGH = 0x60


class _Converter:
    def __init__(self, srcpath: str) -> None:
        self.srcpath = srcpath
        self.out = bytearray()
        self.delay = 0  # frames; 256 per output tick
        self.chid = 0
        self.duration = 0  # output ticks
        self.last_note_time = 0
        self.last_note_len = 0

    def flush_delay(self) -> None:
        ticks = self.delay >> FRAMES_PER_TICK_SHIFT
        self.duration += ticks
        self.delay &= (1 << FRAMES_PER_TICK_SHIFT) - 1
        while ticks >= _MAX_DELAY_BYTE:
            self.out.append(_MAX_DELAY_BYTE)
            ticks -= _MAX_DELAY_BYTE
        if ticks > 0:
            self.out.append(ticks)

    def emit_note(self, chid: int, noteid: int, velocity: int) -> None:
        if noteid < _NOTE_LOW or noteid >= _NOTE_HIGH:
            return
        noteid -= _NOTE_LOW
        if chid != self.chid:
            self.out.append(0xE0 | chid)
            self.chid = chid
        self.out.append(0x80 | noteid)
        self.out.append(velocity & 0xFF)
        self.last_note_time = self.duration
        self.last_note_len = len(self.out)

    def receive_event(self, event: MidiEvent) -> None:
        self.flush_delay()
        if event.opcode == OPCODE_NOTE_ON:
            self.emit_note(event.chid, event.a, event.b)
        elif event.opcode == OPCODE_NOTE_OFF:
            self.emit_note(event.chid, event.a, 0)

    def receive_delay(self, frames: int) -> None:
        if self.delay > _INT_MAX - frames:
            raise MidiError(f"{self.srcpath}: delay overflow")
        self.delay += frames

    def trim_edge_delays(self) -> None:
        # A long silence after the last note is dropped.
        if self.duration - self.last_note_time >= TICKS_PER_SECOND:
            self.duration = self.last_note_time
            del self.out[self.last_note_len:]
        leadc = 0
        leading = 0
        for byte in self.out:
            if byte & 0x80:
                break
            leading += byte
            leadc += 1
        if leading:
            del self.out[:leadc]
            self.duration -= leading

    def run(self, data: bytes) -> bytes:
        try:
            midi = MidiFile(data)
        except MidiError as exc:
            raise MidiError(
                f"{self.srcpath}: Failed to parse MIDI file ({len(data)} bytes)."
            ) from exc
        reader = MidiFileReader(midi, FRAME_RATE)
        reader.repeat = False
        while True:
            result = reader.update()
            if result is None:
                if reader.is_complete():
                    break
                raise MidiError(f"{self.srcpath}: Error playing MIDI file.")
            if isinstance(result, MidiEvent):
                self.receive_event(result)
            else:
                self.receive_delay(result)
                reader.advance(result)
        self.flush_delay()
        self.trim_edge_delays()
        return bytes(self.out)


def mid2bba_convert(data: bytes, srcpath: str = "<input>") -> bytes:
    """Convert MIDI file contents to a BBA song.

    Delays are bytes with the high bit clear (ticks at 48 per second),
    0xE0|chid switches channel, and 0x80|note is followed by a velocity.
    Raises MidiError if the MIDI data cannot be used.
    """
    return _Converter(srcpath).run(bytes(data))