"""Decoding of live MIDI byte streams, and per-device stream bookkeeping."""

from __future__ import annotations

from collections.abc import Hashable
from dataclasses import dataclass, field

from matools.midi_file import (
    CHID_ALL,
    OPCODE_ACTIVE_SENSE,
    OPCODE_CLOCK,
    OPCODE_CONTINUE,
    OPCODE_CONTROL,
    OPCODE_EOX,
    OPCODE_NOTE_ADJUST,
    OPCODE_NOTE_OFF,
    OPCODE_NOTE_ON,
    OPCODE_PARTIAL,
    OPCODE_PRESSURE,
    OPCODE_PROGRAM,
    OPCODE_STALL,
    OPCODE_START,
    OPCODE_STOP,
    OPCODE_SYSEX,
    OPCODE_SYSTEM_RESET,
    OPCODE_WHEEL,
    MidiError,
    MidiEvent,
)

_DATA_COUNTS = {
    OPCODE_NOTE_OFF: 2,
    OPCODE_NOTE_ON: 2,
    OPCODE_NOTE_ADJUST: 2,
    OPCODE_CONTROL: 2,
    OPCODE_PROGRAM: 1,
    OPCODE_PRESSURE: 1,
    OPCODE_WHEEL: 2,
}

_REALTIME = {
    OPCODE_CLOCK,
    OPCODE_START,
    OPCODE_CONTINUE,
    OPCODE_STOP,
    OPCODE_ACTIVE_SENSE,
    OPCODE_SYSTEM_RESET,
}


def _data_run_end(data: bytes, p: int) -> int:
    """Return the index just past the run of data bytes starting at ``p``."""
    n = len(data)
    while p < n and not data[p] & 0x80:
        p += 1
    return p


@dataclass
class MidiStream:
    """Running state of one MIDI input stream.

    Channel voice events split by realtime messages are not supported.
    """

    status: int = 0
    _data: list[int] = field(default_factory=lambda: [0, 0], repr=False)
    _datac: int = field(default=0, repr=False)

    def decode(self, data: bytes) -> tuple[MidiEvent | None, int]:
        """Consume some of ``data`` and return ``(event, bytes_consumed)``.

        Returns ``(None, 0)`` for empty input. An event with opcode STALL
        means the next event is not complete yet; PARTIAL carries data
        bytes that could not be decoded, or an unterminated sysex.
        """
        data = bytes(data)
        if not data:
            return None, 0
        p = 0
        lead = data[0]

        if 0x80 <= lead < 0xF0 or lead == OPCODE_SYSEX:
            self.status = lead
            self._datac = 0
            p = 1
        elif lead == OPCODE_EOX:
            self.status = 0
            self._datac = 0
            return MidiEvent(OPCODE_EOX, CHID_ALL), 1
        elif lead in _REALTIME:
            return MidiEvent(lead, CHID_ALL), 1
        elif lead >= 0xF0:
            # System common or unknown: take whatever data bytes follow.
            self.status = 0
            self._datac = 0
            end = _data_run_end(data, 1)
            payload = data[1:end]
            event = MidiEvent(lead, CHID_ALL, data=payload)
            if len(payload) >= 1:
                event.a = payload[0]
            if len(payload) >= 2:
                event.b = payload[1]
            return event, end

        if self.status == OPCODE_SYSEX:
            end = _data_run_end(data, p)
            event = MidiEvent(OPCODE_PARTIAL, CHID_ALL, data=data[p:end])
            if end < len(data) and data[end] == OPCODE_EOX:
                self.status = 0
                event.opcode = OPCODE_SYSEX
                end += 1
            return event, end

        if not self.status:
            end = _data_run_end(data, p)
            return MidiEvent(OPCODE_PARTIAL, CHID_ALL, data=data[p:end]), end

        count = _DATA_COUNTS.get(self.status & 0xF0)
        if count is None:
            raise MidiError(f"unexpected stream status 0x{self.status:02x}")
        while self._datac < count:
            if p >= len(data) or data[p] & 0x80:
                return MidiEvent(OPCODE_STALL), p
            self._data[self._datac] = data[p]
            self._datac += 1
            p += 1

        opcode = self.status & 0xF0
        event = MidiEvent(opcode, self.status & 0x0F, self._data[0], self._data[1])
        self._datac = 0
        if event.opcode == OPCODE_NOTE_ON and event.b == 0:
            event.opcode = OPCODE_NOTE_OFF
            event.b = 0x40
        return event, p


class MidiIntake:
    """Keeps one MidiStream per ``(driver, devid)`` pair."""

    def __init__(self) -> None:
        self._streams: dict[tuple[Hashable, int], MidiStream] = {}

    def __len__(self) -> int:
        return len(self._streams)

    def get_stream(self, driver: Hashable, devid: int) -> MidiStream | None:
        """Return the stream for this device, or None if it was never added."""
        return self._streams.get((driver, devid))

    def add_stream(self, driver: Hashable, devid: int) -> MidiStream:
        """Return the stream for this device, creating it if needed."""
        return self._streams.setdefault((driver, devid), MidiStream())

    def remove_stream(self, driver: Hashable, devid: int) -> None:
        """Forget the stream for this device; unknown devices are ignored."""
        self._streams.pop((driver, devid), None)