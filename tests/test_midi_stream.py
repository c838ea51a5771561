import pytest

from matools.midi_file import (
    CHID_ALL,
    OPCODE_CLOCK,
    OPCODE_EOX,
    OPCODE_NOTE_OFF,
    OPCODE_NOTE_ON,
    OPCODE_PARTIAL,
    OPCODE_PROGRAM,
    OPCODE_STALL,
    OPCODE_SYSEX,
)
from matools.midi_stream import MidiIntake, MidiStream


def test_empty_input_yields_nothing():
    assert MidiStream().decode(b"") == (None, 0)


def test_note_on_complete():
    event, used = MidiStream().decode(b"\x92\x40\x7f")
    assert used == 3
    assert (event.opcode, event.chid, event.a, event.b) == (OPCODE_NOTE_ON, 2, 0x40, 0x7F)


def test_running_status():
    stream = MidiStream()
    stream.decode(b"\x90\x40\x7f")
    event, used = stream.decode(b"\x41\x20")
    assert used == 2
    assert (event.opcode, event.a, event.b) == (OPCODE_NOTE_ON, 0x41, 0x20)


def test_note_on_velocity_zero_becomes_note_off():
    event, _ = MidiStream().decode(b"\x90\x3c\x00")
    assert event.opcode == OPCODE_NOTE_OFF
    assert event.a == 0x3C
    assert event.b == 0x40


def test_stall_then_completion():
    stream = MidiStream()
    event, used = stream.decode(b"\x93\x40")
    assert event.opcode == OPCODE_STALL
    assert used == 2
    event, used = stream.decode(b"\x50")
    assert used == 1
    assert (event.opcode, event.chid, event.a, event.b) == (OPCODE_NOTE_ON, 3, 0x40, 0x50)


def test_program_change_takes_one_data_byte():
    event, used = MidiStream().decode(b"\xc5\x07\x08")
    assert used == 2
    assert (event.opcode, event.chid, event.a) == (OPCODE_PROGRAM, 5, 7)


def test_realtime_keeps_running_status():
    stream = MidiStream()
    stream.decode(b"\x90\x40\x7f")
    event, used = stream.decode(b"\xf8")
    assert (event.opcode, event.chid, used) == (OPCODE_CLOCK, CHID_ALL, 1)
    event, _ = stream.decode(b"\x30\x31")
    assert (event.opcode, event.a, event.b) == (OPCODE_NOTE_ON, 0x30, 0x31)


def test_complete_sysex():
    event, used = MidiStream().decode(b"\xf0\x01\x02\xf7")
    assert used == 4
    assert event.opcode == OPCODE_SYSEX
    assert event.data == b"\x01\x02"


def test_sysex_split_across_calls():
    stream = MidiStream()
    event, used = stream.decode(b"\xf0\x01\x02")
    assert (event.opcode, event.data, used) == (OPCODE_PARTIAL, b"\x01\x02", 3)
    event, used = stream.decode(b"\x03\xf7")
    assert (event.opcode, event.data, used) == (OPCODE_SYSEX, b"\x03", 2)
    assert stream.status == 0


def test_data_without_status_is_partial():
    event, used = MidiStream().decode(b"\x10\x20\x90")
    assert event.opcode == OPCODE_PARTIAL
    assert event.data == b"\x10\x20"
    assert used == 2


def test_system_common_consumes_data_and_resets_status():
    stream = MidiStream()
    stream.decode(b"\x90\x40\x7f")
    event, used = stream.decode(b"\xf2\x10\x20\x90")
    assert used == 3
    assert (event.opcode, event.chid, event.a, event.b) == (0xF2, CHID_ALL, 0x10, 0x20)
    assert stream.status == 0


def test_eox_alone_resets_status():
    stream = MidiStream()
    stream.decode(b"\x90\x40\x7f")
    event, used = stream.decode(b"\xf7\x40")
    assert (event.opcode, used) == (OPCODE_EOX, 1)
    event, _ = stream.decode(b"\x40")
    assert event.opcode == OPCODE_PARTIAL


def test_intake_add_is_idempotent():
    intake = MidiIntake()
    driver = object()
    first = intake.add_stream(driver, 1)
    assert intake.add_stream(driver, 1) is first
    assert intake.get_stream(driver, 1) is first
    assert len(intake) == 1


def test_intake_distinguishes_devices():
    intake = MidiIntake()
    a = intake.add_stream("drv", 1)
    b = intake.add_stream("drv", 2)
    assert a is not b
    assert intake.get_stream("other", 1) is None


def test_intake_remove():
    intake = MidiIntake()
    kept = intake.add_stream("drv", 2)
    intake.add_stream("drv", 1)
    intake.remove_stream("drv", 1)
    intake.remove_stream("drv", 9)
    assert intake.get_stream("drv", 1) is None
    assert intake.get_stream("drv", 2) is kept
    assert len(intake) == 1


@pytest.mark.parametrize("status", [0x80, 0xA0, 0xB0, 0xE0])
def test_two_byte_voice_messages(status):
    event, used = MidiStream().decode(bytes((status | 1, 0x11, 0x22)))
    assert used == 3
    assert (event.opcode, event.chid, event.a, event.b) == (status, 1, 0x11, 0x22)