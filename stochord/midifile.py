'''Standard MIDI File (type 1) writer'''

import logging
import os
import struct
import tempfile
from pathlib import Path

from stochord.encoding import encode_track_message, to_vlq
from stochord.errors import InvalidArgument
from stochord.musicrep import EndOfTrack

logger = logging.getLogger(__name__)

EXTENSION = '.mid'
FORMAT_MULTI_TRACK = 1

def header_chunk(track_count, resolution):
    if not 0 < resolution < 0x8000:
        raise InvalidArgument(f'Resolution {resolution} does not fit a ticks-per-quarter-note division')
    return struct.pack('>4sIHHH', b'MThd', 6, FORMAT_MULTI_TRACK, track_count, resolution)

def track_body(track):
    '''Events in tick order with delta times, closed by exactly one end-of-track.
    End-of-track moves past the last event if a note outlasts it, and is added if missing.'''
    body = bytearray()
    tick = 0
    end = 0
    for event in track.sorted_events():
        if isinstance(event.message, EndOfTrack):
            end = max(end, event.tick)
            continue
        body += to_vlq(event.tick - tick)
        body += encode_track_message(event.message)
        tick = event.tick
    body += to_vlq(max(end, tick) - tick)
    body += encode_track_message(EndOfTrack())
    return bytes(body)

def track_chunk(track):
    body = track_body(track)
    return struct.pack('>4sI', b'MTrk', len(body)) + body

def serialize(sequence):
    '''The whole file as bytes. Raises before returning anything if any event cannot be encoded.'''
    buf = bytearray(header_chunk(len(sequence.tracks), sequence.resolution))
    for track in sequence.tracks:
        buf += track_chunk(track)
    return bytes(buf)

def file_name(name):
    path = Path(name)
    if path.suffix.lower() != EXTENSION:
        path = path.with_name(path.name + EXTENSION)
    return path

def write_file(sequence, name):
    '''Writes sequence to name (".mid" is appended when missing) and returns the resolved path.
    The file only appears once it is complete.'''
    data = serialize(sequence)
    path = file_name(name).resolve()
    fd, tmp_name = tempfile.mkstemp(prefix=f'.{path.stem}.', suffix='.tmp', dir=path.parent)
    try:
        with os.fdopen(fd, 'wb') as file:
            file.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise
    logger.info('Wrote %d bytes to %s', len(data), path)
    return path

def save(sequence, dest):
    '''Saves to a file name or to an open binary stream'''
    if isinstance(dest, (str, os.PathLike)):
        return write_file(sequence, dest)
    dest.write(serialize(sequence))
    return dest
