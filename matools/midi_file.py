"""Standard MIDI file parsing and frame-timed event playback."""

from __future__ import annotations

import math
import sys
from dataclasses import dataclass, field

from matools.encoding import decode_32be, vlq_decode

# Channel voice messages.
OPCODE_NOTE_OFF = 0x80
OPCODE_NOTE_ON = 0x90
OPCODE_NOTE_ADJUST = 0xA0
OPCODE_CONTROL = 0xB0
OPCODE_PROGRAM = 0xC0
OPCODE_PRESSURE = 0xD0
OPCODE_WHEEL = 0xE0

# System common messages (streams only).
OPCODE_TIMECODE = 0xF1
OPCODE_SONG_POSITION = 0xF2
OPCODE_SONG_SELECT = 0xF3
OPCODE_TUNE_REQUEST = 0xF6
OPCODE_EOX = 0xF7

# Real time messages (streams only).
OPCODE_CLOCK = 0xF8
OPCODE_START = 0xFA
OPCODE_CONTINUE = 0xFB
OPCODE_STOP = 0xFC
OPCODE_ACTIVE_SENSE = 0xFE
OPCODE_SYSTEM_RESET = 0xFF

# Other messages.
OPCODE_SYSEX = 0xF0
OPCODE_META = 0x01
OPCODE_PARTIAL = 0x02
OPCODE_STALL = 0x03

CHID_ALL = 0xFF

# Channel mode messages (control keys).
CONTROL_SOUND_OFF = 0x78
CONTROL_RESET_CONTROL = 0x79
CONTROL_LOCAL = 0x7A
CONTROL_NOTES_OFF = 0x7B
CONTROL_OMNI_OFF = 0x7C
CONTROL_OMNI_ON = 0x7D
CONTROL_MONOPHONIC = 0x7E
CONTROL_POLYPHONIC = 0x7F

DEFAULT_USPERQNOTE = 500000
LOOP_MARKER = b"BBx:START"

_MTHD = int.from_bytes(b"MThd", "big")
_MTRK = int.from_bytes(b"MTrk", "big")

_TWO_DATA = {OPCODE_NOTE_OFF, OPCODE_NOTE_ON, OPCODE_NOTE_ADJUST, OPCODE_CONTROL, OPCODE_WHEEL}
_ONE_DATA = {OPCODE_PROGRAM, OPCODE_PRESSURE}


class MidiError(ValueError):
    """Raised for malformed MIDI data or misuse of a reader."""


@dataclass
class MidiEvent:
    """One decoded MIDI event. ``data`` holds sysex or meta payloads."""

    opcode: int
    chid: int = CHID_ALL
    a: int = 0
    b: int = 0
    data: bytes = b""


class MidiFile:
    """A parsed standard MIDI file: header fields and raw track bodies."""

    def __init__(self, data: bytes) -> None:
        self.format = 0
        self.track_count = 0
        self.division = 0
        self.tracks: list[bytes] = []
        self._decode(bytes(data))

    def _decode(self, data: bytes) -> None:
        pos = 0
        while pos < len(data):
            try:
                chunk_id, pos = decode_32be(data, pos)
                length, pos = decode_32be(data, pos)
            except ValueError as exc:
                raise MidiError("truncated chunk header") from exc
            if length < 0 or length > len(data) - pos:
                raise MidiError("chunk length out of range")
            body = data[pos:pos + length]
            pos += length
            if chunk_id == _MTHD:
                self._decode_mthd(body)
            elif chunk_id == _MTRK:
                self.tracks.append(body)
        if not self.division:
            raise MidiError("no MThd chunk")
        if not self.tracks:
            raise MidiError("no MTrk chunk")

    def _decode_mthd(self, body: bytes) -> None:
        if self.division:
            raise MidiError("multiple MThd chunks")
        if len(body) < 6:
            raise MidiError("malformed MThd")
        self.format = int.from_bytes(body[0:2], "big")
        self.track_count = int.from_bytes(body[2:4], "big")
        self.division = int.from_bytes(body[4:6], "big")
        if not self.division:
            raise MidiError("division must be nonzero")
        if self.division & 0x8000:
            raise MidiError("SMPTE timing not supported")


@dataclass
class _TrackReader:
    data: bytes
    p: int = 0
    p0: int = 0
    term: bool = False
    term0: bool = False
    delay: int = -1
    delay0: int = -1
    status: int = 0
    status0: int = 0


@dataclass
class MidiFileReader:
    """Plays a MidiFile event by event, with delays measured in frames."""

    file: MidiFile
    rate: int
    repeat: bool = False
    usperqnote: int = DEFAULT_USPERQNOTE
    framespertick: float = field(default=0.0, init=False)
    delay: int = field(default=0, init=False)
    _usperqnote0: int = field(default=DEFAULT_USPERQNOTE, init=False, repr=False)
    _tracks: list[_TrackReader] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.rate < 1:
            raise MidiError(f"invalid rate {self.rate}")
        self._usperqnote0 = self.usperqnote
        self._tracks = [_TrackReader(track) for track in self.file.tracks]
        self._recalculate_tempo()

    def _recalculate_tempo(self) -> None:
        self.framespertick = (self.usperqnote * self.rate) / (self.file.division * 1000000.0)

    def set_rate(self, rate: int) -> None:
        """Change the output frame rate."""
        if rate < 1:
            raise MidiError(f"invalid rate {rate}")
        if rate == self.rate:
            return
        self.rate = rate
        self._recalculate_tempo()

    def update(self) -> MidiEvent | int | None:
        """Return the next due event, a frame count to wait, or None at the end.

        After a frame count is returned, the same count keeps coming back
        until advance() consumes it. In repeat mode the end of the song
        jumps back to the loop point after a short delay.
        """
        if self.delay:
            return self.delay
        delay: int | None = None
        for track in self._tracks:
            if track.term:
                continue
            if track.delay < 0:
                self._read_delay(track)
                if track.term:
                    continue
            if track.delay:
                if delay is None or track.delay < delay:
                    delay = track.delay
                continue
            event = self._read_event(track)
            if event is None:
                track.term = True
                continue
            self._local_event(event)
            return event
        if delay is None:
            if self.repeat:
                print("--- song repeat ---", file=sys.stderr)
                return self._restart()
            return None
        self.delay = delay
        return delay

    def advance(self, framec: int) -> None:
        """Advance the clock by ``framec`` frames, no further than the pending delay."""
        if framec < 0 or framec > self.delay:
            raise MidiError(f"cannot advance {framec} frames with {self.delay} pending")
        self.delay -= framec
        for track in self._tracks:
            if track.delay >= framec:
                track.delay -= framec

    def is_complete(self) -> bool:
        """True once every track has reached its end."""
        return all(track.term for track in self._tracks)

    def _restart(self) -> int:
        if self.usperqnote != self._usperqnote0:
            self.usperqnote = self._usperqnote0
            self._recalculate_tempo()
        pending = [
            track.delay
            for track in self._tracks
            for _ in [self._restore(track)]
            if track.delay >= 0
        ]
        delay = min(pending) if pending else 0
        if delay < 1:
            for track in self._tracks:
                if track.delay >= 0:
                    track.delay += 1
            delay = 1
        self.delay = delay
        return delay

    @staticmethod
    def _restore(track: _TrackReader) -> None:
        track.p = track.p0
        track.term = track.term0
        track.delay = track.delay0
        track.status = track.status0

    def _set_loop_point(self) -> None:
        self._usperqnote0 = self.usperqnote
        for track in self._tracks:
            track.p0 = track.p
            track.term0 = track.term
            track.delay0 = track.delay
            track.status0 = track.status

    def _local_event(self, event: MidiEvent) -> None:
        if event.opcode == OPCODE_META and event.a == 0x51:
            if len(event.data) == 3:
                usperqnote = int.from_bytes(event.data, "big")
                if usperqnote and usperqnote != self.usperqnote:
                    self.usperqnote = usperqnote
                    self._recalculate_tempo()
        elif event.opcode == OPCODE_SYSEX and event.data == LOOP_MARKER:
            self._set_loop_point()

    def _read_delay(self, track: _TrackReader) -> None:
        if track.p >= len(track.data):
            track.term = True
            return
        try:
            ticks, used = vlq_decode(track.data[track.p:])
        except ValueError:
            track.term = True
            return
        track.p += used
        if ticks:
            frames = math.floor(ticks * self.framespertick + 0.5)
            track.delay = max(frames, 1)
        else:
            track.delay = 0

    @staticmethod
    def _read_payload(data: bytes, p: int) -> tuple[bytes, int] | None:
        try:
            length, used = vlq_decode(data[p:])
        except ValueError:
            return None
        p += used
        if p > len(data) - length:
            return None
        return data[p:p + length], p + length

    def _read_event(self, track: _TrackReader) -> MidiEvent | None:
        data = track.data
        n = len(data)
        p = track.p
        if p >= n:
            return None
        status = track.status
        if data[p] & 0x80:
            status = data[p]
            p += 1
        if not status:
            return None
        track.status = status
        track.delay = -1

        high = status & 0xF0
        chid = status & 0x0F
        if high in _TWO_DATA:
            if p > n - 2:
                return None
            a, b = data[p], data[p + 1]
            track.p = p + 2
            if high == OPCODE_NOTE_ON and b == 0:
                return MidiEvent(OPCODE_NOTE_OFF, chid, a, 0x40)
            return MidiEvent(high, chid, a, b)
        if high in _ONE_DATA:
            if p > n - 1:
                return None
            track.p = p + 1
            return MidiEvent(high, chid, data[p])

        track.status = 0
        if status in (0xF0, 0xF7):
            result = self._read_payload(data, p)
            if result is None:
                return None
            payload, track.p = result
            if payload.endswith(b"\xf7"):
                payload = payload[:-1]
            return MidiEvent(OPCODE_SYSEX, CHID_ALL, data=payload)
        if status == 0xFF:
            if p >= n:
                return None
            meta_type = data[p]
            result = self._read_payload(data, p + 1)
            if result is None:
                return None
            payload, track.p = result
            return MidiEvent(OPCODE_META, CHID_ALL, meta_type, data=payload)
        return None