'''In-memory representation of a composition: notes, messages, events, tracks'''

import enum
import re
import typing
from dataclasses import dataclass, field

from stochord.errors import InvalidArgument

NOTE_NAMES = ('C', 'C#', 'D', 'D#', 'E', 'F', 'F#', 'G', 'G#', 'A', 'A#', 'B')
_NOTE_NAME_RE = re.compile(r'^([A-G]#?)([0-9]+)$')

# Allowed chord and subdivision lengths, in quarter notes
LENGTHS = (0.25, 0.5, 0.75, 1, 1.5, 2, 3, 4, 6, 7, 8)

DEFAULT_RESOLUTION = 24

def check_note(note):
    if isinstance(note, bool) or not isinstance(note, int) or not 0 <= note <= 127:
        raise InvalidArgument(f'Note {note!r} out of range (0-127)')
    return note

def check_data_byte(value, what='data byte'):
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 127:
        raise InvalidArgument(f'{what} {value!r} out of range (0-127)')
    return value

def check_channel(channel):
    if isinstance(channel, bool) or not isinstance(channel, int) or not 0 <= channel <= 15:
        raise InvalidArgument(f'Channel {channel!r} out of range (0-15)')
    return channel

def note_to_name(note):
    '''70 -> "A#5"'''
    check_note(note)
    return f'{NOTE_NAMES[note % 12]}{note // 12}'

def name_to_note(name):
    '''"A#5" -> 70. Case insensitive, sharps only.'''
    if not isinstance(name, str):
        raise InvalidArgument(f'Unrecognized note {name!r}')
    match = _NOTE_NAME_RE.match(name.strip().upper())
    if match is None:
        raise InvalidArgument(f'Unrecognized note {name!r}')
    letter, octave = match.groups()
    note = int(octave) * 12 + NOTE_NAMES.index(letter)
    if note > 127:
        raise InvalidArgument(f'Note {name!r} out of range (0-127)')
    return note

class Controller(enum.IntEnum):
    OMNI_OFF = 0x7C
    OMNI_ON = 0x7D
    MONO_ON = 0x7E
    POLY_ON = 0x7F

class MetaType(enum.IntEnum):
    TRACK_NAME = 0x03
    END_OF_TRACK = 0x2F
    TEMPO = 0x51

@dataclass(frozen=True)
class NoteOn:
    note: int
    velocity: int
    channel: int = 0

    def __post_init__(self):
        check_note(self.note)
        check_data_byte(self.velocity, 'Velocity')
        check_channel(self.channel)

@dataclass(frozen=True)
class NoteOff:
    note: int
    velocity: int = 0
    channel: int = 0

    def __post_init__(self):
        check_note(self.note)
        check_data_byte(self.velocity, 'Release velocity')
        check_channel(self.channel)

@dataclass(frozen=True)
class ControlChange:
    controller: int
    value: int = 0
    channel: int = 0

    def __post_init__(self):
        check_data_byte(self.controller, 'Controller')
        check_data_byte(self.value, 'Controller value')
        check_channel(self.channel)

@dataclass(frozen=True)
class ProgramChange:
    program: int
    channel: int = 0

    def __post_init__(self):
        check_data_byte(self.program, 'Instrument')
        check_channel(self.channel)

@dataclass(frozen=True)
class TrackName:
    name: str

    def __post_init__(self):
        try:
            self.name.encode('latin-1')
        except (UnicodeEncodeError, AttributeError) as exc:
            raise InvalidArgument(f'Track name {self.name!r} is not latin-1 text') from exc

@dataclass(frozen=True)
class Tempo:
    bpm: int

    def __post_init__(self):
        if self.bpm <= 0:
            raise ZeroDivisionError(f'Tempo must be positive, got {self.bpm} bpm')
        if self.usec_per_beat > 0xFFFFFF:
            raise InvalidArgument(f'Tempo {self.bpm} bpm does not fit in three bytes')

    @property
    def usec_per_beat(self):
        return int(60_000_000 // self.bpm)

@dataclass(frozen=True)
class EndOfTrack:
    pass

@dataclass(frozen=True)
class SysEx:
    '''Complete system exclusive message, starting with 0xF0 and ending with 0xF7'''
    data: bytes

    def __post_init__(self):
        data = bytes(self.data)
        if len(data) < 2 or data[0] != 0xF0 or data[-1] != 0xF7:
            raise InvalidArgument(f'SysEx must be framed by F0 ... F7, got {data.hex()}')
        object.__setattr__(self, 'data', data)

GM_RESET = SysEx(bytes((0xF0, 0x7E, 0x7F, 0x09, 0x01, 0xF7)))

Message = typing.Union[NoteOn, NoteOff, ControlChange, ProgramChange, TrackName, Tempo, EndOfTrack, SysEx]

@dataclass(frozen=True)
class Event:
    tick: int
    message: Message

    def __post_init__(self):
        if isinstance(self.tick, bool) or not isinstance(self.tick, int) or self.tick < 0:
            raise InvalidArgument(f'Event tick must be a non-negative integer, got {self.tick!r}')

@dataclass(frozen=True)
class ChordSpec:
    '''Abstract chord in the progression skeleton'''
    root: int
    length: float

    def __post_init__(self):
        if isinstance(self.root, bool) or not isinstance(self.root, int) or not 0 <= self.root <= 11:
            raise InvalidArgument(f'Chord root {self.root!r} is not a pitch class (0-11)')
        if self.length not in LENGTHS:
            raise InvalidArgument(f'Chord length {self.length!r} not one of {LENGTHS}')

@dataclass(frozen=True)
class Voicing:
    '''Simultaneous notes sharing a velocity. An empty voicing is a rest.'''
    notes: typing.Tuple[int, ...]
    velocity: int
    duration: float

    def __post_init__(self):
        object.__setattr__(self, 'notes', tuple(self.notes))
        for note in self.notes:
            check_note(note)
        if isinstance(self.velocity, bool) or not isinstance(self.velocity, int) or not 1 <= self.velocity <= 127:
            raise InvalidArgument(f'Velocity {self.velocity!r} out of range (1-127)')
        if not self.duration > 0:
            raise InvalidArgument(f'Voicing duration must be positive, got {self.duration!r}')

@dataclass
class Track:
    index: int
    events: list[Event] = field(default_factory=list)

    def append(self, event):
        self.events.append(event)

    def sorted_events(self):
        '''Events by tick; events sharing a tick keep insertion order'''
        return sorted(self.events, key=lambda event: event.tick)

    @property
    def end_tick(self):
        return max((event.tick for event in self.events), default=0)

@dataclass
class Sequence:
    '''A whole composition. bpm and length (in quarter notes) describe what was composed.'''
    resolution: int = DEFAULT_RESOLUTION
    tracks: list[Track] = field(default_factory=list)
    bpm: typing.Optional[int] = None
    length: typing.Optional[int] = None

    def __post_init__(self):
        if isinstance(self.resolution, bool) or not isinstance(self.resolution, int) or not 0 < self.resolution < 0x8000:
            raise InvalidArgument(f'Resolution must be in 1..32767 ticks per quarter note, got {self.resolution!r}')

    def create_track(self):
        track = Track(len(self.tracks))
        self.tracks.append(track)
        return track

    def delete_track(self, index):
        '''Deletes a track. Track 0 and indices out of range are ignored.'''
        if 0 < index < len(self.tracks):
            del self.tracks[index]
            for i, track in enumerate(self.tracks):
                track.index = i

    def track(self, index):
        if not 0 <= index < len(self.tracks):
            raise InvalidArgument(f'No track {index} (have {len(self.tracks)})')
        return self.tracks[index]

    @property
    def quarter_note_length(self):
        return self.resolution

    def ticks(self, quarter_notes):
        return int(quarter_notes * self.resolution)

    def add_event(self, track, event):
        self.track(track).append(event)

    def add_message(self, track, message, tick):
        self.add_event(track, Event(tick, message))

    def add_note(self, track, note, velocity, length, release_velocity=0, tick=0):
        '''Adds a note_on at tick and its note_off length quarter notes later.
        note may be a MIDI number or a name such as "A#5".'''
        if isinstance(note, str):
            note = name_to_note(note)
        note_on = NoteOn(note, velocity)
        note_off = NoteOff(note, release_velocity)
        self.add_message(track, note_on, tick)
        self.add_message(track, note_off, tick + self.ticks(length))

    def enable_gm_soundset(self, track, tick=0):
        self.add_message(track, GM_RESET, tick)

    def set_track_name(self, track, name, tick=0):
        self.add_message(track, TrackName(name), tick)

    def set_omni(self, track, on, tick=0):
        self.add_message(track, ControlChange(Controller.OMNI_ON if on else Controller.OMNI_OFF), tick)

    def set_poly(self, track, poly, tick=0):
        self.add_message(track, ControlChange(Controller.POLY_ON if poly else Controller.MONO_ON), tick)

    def set_instrument(self, track, instrument, tick=0):
        self.add_message(track, ProgramChange(instrument), tick)

    def set_tempo(self, track, bpm, tick=0):
        self.add_message(track, Tempo(bpm), tick)

    def set_end_of_track(self, track, tick):
        self.add_message(track, EndOfTrack(), tick)
