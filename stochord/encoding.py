'''Byte layouts of the messages a composition emits'''

import io
import struct

from stochord.errors import InvalidArgument
from stochord.musicrep import (
    ControlChange,
    EndOfTrack,
    MetaType,
    NoteOff,
    NoteOn,
    ProgramChange,
    SysEx,
    Tempo,
    TrackName,
)

NOTE_OFF = 0x80
NOTE_ON = 0x90
CONTROL_CHANGE = 0xB0
PROGRAM_CHANGE = 0xC0
SYSEX = 0xF0
META = 0xFF

MAX_VLQ = 0x0FFFFFFF

def to_vlq(value):
    '''7 bits per byte, most significant group first, continuation bit on all but the last byte'''
    if value < 0 or value > MAX_VLQ:
        raise InvalidArgument(f'{value} cannot be encoded as a variable-length quantity')
    buf = bytearray()
    last_byte = 0
    while value or not last_byte:
        buf.append((value & 0x7F) | last_byte)
        last_byte = 0x80
        value >>= 7
    return bytes(buf[::-1])

def from_vlq(src):
    '''Reads one variable-length quantity from a binary stream or bytes'''
    if isinstance(src, (bytes, bytearray)):
        src = io.BytesIO(src)
    value = 0
    for _ in range(4):
        b = src.read(1)
        if not b:
            raise InvalidArgument('Truncated variable-length quantity')
        b = b[0]
        value = (value << 7) | (b & 0x7F)
        if not (b & 0x80):
            return value
    raise InvalidArgument('Variable-length quantity longer than 4 bytes')

def tempo_bytes(bpm):
    '''Microseconds per quarter note as 3 big-endian bytes'''
    return struct.pack('>I', Tempo(bpm).usec_per_beat)[1:]

def _meta(kind, data):
    return bytes((META, kind)) + to_vlq(len(data)) + data

def encode_message(message):
    '''Raw bytes of a message, as they appear on the wire'''
    if isinstance(message, NoteOn):
        return bytes((NOTE_ON | message.channel, message.note, message.velocity))
    if isinstance(message, NoteOff):
        return bytes((NOTE_OFF | message.channel, message.note, message.velocity))
    if isinstance(message, ControlChange):
        return bytes((CONTROL_CHANGE | message.channel, int(message.controller), message.value))
    if isinstance(message, ProgramChange):
        return bytes((PROGRAM_CHANGE | message.channel, message.program))
    if isinstance(message, TrackName):
        return _meta(MetaType.TRACK_NAME, message.name.encode('latin-1'))
    if isinstance(message, Tempo):
        return _meta(MetaType.TEMPO, tempo_bytes(message.bpm))
    if isinstance(message, EndOfTrack):
        return _meta(MetaType.END_OF_TRACK, b'')
    if isinstance(message, SysEx):
        return message.data
    raise InvalidArgument(f'Cannot encode {message!r}')

def encode_track_message(message):
    '''Bytes of a message inside a track chunk.
    Same as encode_message except SysEx, which carries its length after the F0 status.'''
    if isinstance(message, SysEx):
        body = message.data[1:]
        return bytes((SYSEX, )) + to_vlq(len(body)) + body
    return encode_message(message)
