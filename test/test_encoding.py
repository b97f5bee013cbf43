import io

import pytest

from stochord.encoding import (
    encode_message,
    encode_track_message,
    from_vlq,
    tempo_bytes,
    to_vlq,
)
from stochord.errors import InvalidArgument
from stochord.musicrep import (
    GM_RESET,
    ControlChange,
    Controller,
    EndOfTrack,
    NoteOff,
    NoteOn,
    ProgramChange,
    Tempo,
    TrackName,
)

VLQ_EXAMPLES = {
    0: b'\x00',
    0x40: b'\x40',
    127: b'\x7f',
    128: b'\x81\x00',
    0x2000: b'\xc0\x00',
    16383: b'\xff\x7f',
    16384: b'\x81\x80\x00',
    0x1FFFFF: b'\xff\xff\x7f',
    0x200000: b'\x81\x80\x80\x00',
    268435455: b'\xff\xff\xff\x7f',
}

def test_vlq():
    for value, encoded in VLQ_EXAMPLES.items():
        assert to_vlq(value) == encoded, value
        assert from_vlq(encoded) == value, value

def test_vlq_reads_one_quantity_from_stream():
    stream = io.BytesIO(b'\x81\x00\x7f\x00')
    assert from_vlq(stream) == 128
    assert from_vlq(stream) == 127
    assert from_vlq(stream) == 0

def test_vlq_limits():
    with pytest.raises(InvalidArgument):
        to_vlq(-1)
    with pytest.raises(InvalidArgument):
        to_vlq(0x10000000)
    with pytest.raises(InvalidArgument):
        from_vlq(b'\x81')
    with pytest.raises(InvalidArgument):
        from_vlq(b'\x81\x80\x80\x80\x00')

def test_tempo_bytes():
    assert tempo_bytes(120) == bytes((0x07, 0xA1, 0x20))
    assert tempo_bytes(60) == bytes((0x0F, 0x42, 0x40))
    with pytest.raises(ArithmeticError):
        tempo_bytes(0)

def test_channel_messages():
    assert encode_message(NoteOn(60, 100)) == bytes((0x90, 60, 100))
    assert encode_message(NoteOn(60, 100, channel=3)) == bytes((0x93, 60, 100))
    assert encode_message(NoteOff(60)) == bytes((0x80, 60, 0))
    assert encode_message(NoteOff(61, 40, channel=15)) == bytes((0x8F, 61, 40))
    assert encode_message(ControlChange(7, 90)) == bytes((0xB0, 7, 90))
    assert encode_message(ProgramChange(41)) == bytes((0xC0, 41))
    assert encode_message(ProgramChange(0, channel=9)) == bytes((0xC9, 0))

def test_mode_messages():
    assert encode_message(ControlChange(Controller.OMNI_ON)) == bytes((0xB0, 0x7D, 0))
    assert encode_message(ControlChange(Controller.OMNI_OFF)) == bytes((0xB0, 0x7C, 0))
    assert encode_message(ControlChange(Controller.POLY_ON)) == bytes((0xB0, 0x7F, 0))
    assert encode_message(ControlChange(Controller.MONO_ON)) == bytes((0xB0, 0x7E, 0))

def test_meta_messages():
    assert encode_message(TrackName('SBAC')) == b'\xff\x03\x04SBAC'
    assert encode_message(TrackName('')) == b'\xff\x03\x00'
    assert encode_message(TrackName('x' * 200)) == b'\xff\x03\x81\x48' + b'x' * 200
    assert encode_message(Tempo(120)) == bytes((0xFF, 0x51, 0x03, 0x07, 0xA1, 0x20))
    assert encode_message(EndOfTrack()) == bytes((0xFF, 0x2F, 0x00))

def test_sysex():
    assert encode_message(GM_RESET) == bytes((0xF0, 0x7E, 0x7F, 0x09, 0x01, 0xF7))
    assert encode_track_message(GM_RESET) == bytes((0xF0, 0x05, 0x7E, 0x7F, 0x09, 0x01, 0xF7))
    assert encode_track_message(NoteOn(60, 1)) == encode_message(NoteOn(60, 1))

def test_unknown_message():
    with pytest.raises(InvalidArgument):
        encode_message('note_on')
