'''Weighted random composition of a chord progression, bass line and melody'''

import json
import logging
import os
import typing
from dataclasses import dataclass, field, fields, replace

import numpy as np

from stochord.errors import InvalidArgument, NoteOutOfRange
from stochord.musicrep import DEFAULT_RESOLUTION, LENGTHS, ChordSpec, Sequence, Voicing
from stochord.selection import WeightedSelector

logger = logging.getLogger(__name__)

major_scale = (0, 2, 4, 5, 7, 9, 11)

# (low, high) velocity of each bucket: quiet, medium, loud, very loud
VELOCITY_BUCKETS = ((1, 40), (41, 60), (61, 90), (91, 127))

@dataclass(frozen=True)
class Style:
    '''Weight tables driving every random choice'''
    #                  C   C#  D  D# E  F  F# G  G# A   A# B
    note_weights: typing.Sequence[int] = (10, 4, 8, 4, 7, 9, 4, 9, 4, 10, 4, 6)
    # Indexed like LENGTHS
    chord_length_weights: typing.Sequence[int] = (1, 2, 1, 5, 2, 7, 6, 8, 7, 4, 5)
    treble_length_weights: typing.Sequence[int] = (7, 9, 4, 10, 6, 8, 5, 6, 4, 2, 3)
    # Indexed by octave
    bass_octave_weights: typing.Sequence[int] = (1, 1, 2, 5, 4, 3, 2, 1, 1, 1)
    treble_octave_weights: typing.Sequence[int] = (1, 1, 1, 2, 3, 5, 4, 3, 1, 1)
    # Indexed by number of notes sounding together
    bass_note_count_weights: typing.Sequence[int] = (1, 2, 4, 5, 3, 2)
    treble_note_count_weights: typing.Sequence[int] = (5, 4, 2, 1, 1)
    # Indexed like VELOCITY_BUCKETS
    velocity_weights: typing.Sequence[int] = (1, 3, 5, 1)
    repeat_penalty: int = 2
    bar_bonus: int = 5
    chord_tone_bonus: int = 5

    def __post_init__(self):
        sizes = {
            'note_weights': 12,
            'chord_length_weights': len(LENGTHS),
            'treble_length_weights': len(LENGTHS),
            'velocity_weights': len(VELOCITY_BUCKETS),
        }
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name.endswith('_weights'):
                value = tuple(value)
                if not value or any(w < 0 for w in value):
                    raise InvalidArgument(f'{f.name} must be a non-empty list of non-negative weights, got {value}')
                if f.name in sizes and len(value) != sizes[f.name]:
                    raise InvalidArgument(f'{f.name} needs {sizes[f.name]} weights, got {len(value)}')
                object.__setattr__(self, f.name, value)
        for name in ('repeat_penalty', 'bar_bonus', 'chord_tone_bonus'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not value >= 0:
                raise InvalidArgument(f'{name} must be a non-negative number, got {value!r}')
        # A repeated chord root must keep a non-negative weight
        if self.repeat_penalty > min(self.note_weights):
            raise InvalidArgument(f'repeat_penalty {self.repeat_penalty} exceeds the smallest note weight')

    @staticmethod
    def load(src):
        '''Style from a JSON object of overrides, given as a file name or an open text file'''
        if isinstance(src, (str, os.PathLike)):
            with open(src) as file:
                return Style._load(file)
        return Style._load(src)

    @staticmethod
    def _load(src):
        try:
            overrides = json.load(src)
        except json.JSONDecodeError as exc:
            raise InvalidArgument(f'Style is not valid JSON: {exc}') from exc
        if not isinstance(overrides, dict):
            raise InvalidArgument('Style must be a JSON object')
        known = {f.name for f in fields(Style)}
        unknown = set(overrides) - known
        if unknown:
            raise InvalidArgument(f'Unknown style keys: {", ".join(sorted(unknown))}')
        return replace(Style(), **overrides)

@dataclass
class GenerationConfig:
    '''Parameters of one generation run. seed=None draws fresh entropy.'''
    seed: typing.Optional[int] = None
    resolution: int = DEFAULT_RESOLUTION
    style: Style = field(default_factory=Style)
    release_velocity: int = 0
    track_name: str = 'SBAC'
    instrument: int = 0 # Acoustic grand piano
    base_length: int = 64 # Quarter notes
    length_step: int = 16
    length_decay: float = 0.9
    key_range: typing.Tuple[int, int] = (-4, 8)
    tempo_range: typing.Tuple[int, int] = (90, 199)

def chord_tones(root):
    '''Pitch classes of the triad on root: root, diatonic third when root is in C major, fifth'''
    tones = [root]
    if root in major_scale:
        tones.append(major_scale[(major_scale.index(root) + 2) % len(major_scale)])
    tones.append((root + 7) % 12)
    return tones

def lands_on_bar(beat, length, beats_per_bar=4):
    return (beat + length) % beats_per_bar == 0

class Composer():
    '''Composes one piece into a single-track Sequence.
    Global parameters (length, key, bpm) are drawn on construction, notes by compose().'''
    def __init__(self, config=None, selector=None):
        self.config = config if config is not None else GenerationConfig()
        self.style = self.config.style
        self.selector = selector if selector is not None else WeightedSelector(self.config.seed)
        self.length = self.draw_length()
        self.key = self.selector.integer(*self.config.key_range)
        self.bpm = self.selector.integer(*self.config.tempo_range)
        self.chords = []
        self.sequence = None
        logger.debug('length=%d key=%d bpm=%d', self.length, self.key, self.bpm)

    def draw_length(self):
        '''Total length in quarter notes: extend by one step while uniform() < p, decaying p each time'''
        length = self.config.base_length
        p = 1.0
        while self.selector.uniform() < p:
            length += self.config.length_step
            p *= self.config.length_decay
        return length

    def chord_sequence(self):
        '''Chord skeleton covering at least self.length quarter notes'''
        chords = []
        beat = 0.0
        previous = None
        while beat < self.length:
            note_weights = np.array(self.style.note_weights, dtype=float)
            if previous is not None:
                note_weights[previous] -= self.style.repeat_penalty
            length_weights = np.array(self.style.chord_length_weights, dtype=float)
            for i, length in enumerate(LENGTHS):
                if lands_on_bar(beat, length):
                    length_weights[i] += self.style.bar_bonus
            previous = self.selector.select(note_weights)
            length = LENGTHS[self.selector.select(length_weights)]
            chords.append(ChordSpec(previous, length))
            beat += length
        return chords

    def draw_velocity(self):
        low, high = VELOCITY_BUCKETS[self.selector.select(self.style.velocity_weights)]
        return self.selector.integer(low, high)

    def voicing(self, root, duration, octave_weights, note_count_weights):
        '''Draws a voicing of the chord on root. Raises NoteOutOfRange if a note leaves 0-127.'''
        count = self.selector.select(note_count_weights)
        note_weights = np.array(self.style.note_weights, dtype=float)
        for tone in chord_tones(root):
            note_weights[tone] += self.style.chord_tone_bonus
        velocity = self.draw_velocity()
        notes = []
        for _ in range(count):
            pitch_class = self.selector.select(note_weights)
            octave = self.selector.select(octave_weights)
            note = octave * 12 + pitch_class + self.key
            if not 0 <= note <= 127:
                raise NoteOutOfRange(f'Octave {octave}, pitch class {pitch_class} and key {self.key} give note {note}, outside 0-127')
            notes.append(note)
        return Voicing(notes, velocity, duration)

    def write_voicing(self, voicing, beat, track=0):
        tick = self.sequence.ticks(beat)
        for note in voicing.notes:
            self.sequence.add_note(track, note, voicing.velocity, voicing.duration, self.config.release_velocity, tick)

    def bass(self, chord, beat):
        voicing = self.voicing(chord.root, chord.length, self.style.bass_octave_weights, self.style.bass_note_count_weights)
        self.write_voicing(voicing, beat)
        return voicing

    def melody(self, chord, beat):
        '''Subdivides the chord into treble voicings. The last one may run past the chord end.'''
        voicings = []
        position = beat
        end = beat + chord.length
        while position < end:
            length = LENGTHS[self.selector.select(self.style.treble_length_weights)]
            voicing = self.voicing(chord.root, length, self.style.treble_octave_weights, self.style.treble_note_count_weights)
            self.write_voicing(voicing, position)
            voicings.append(voicing)
            position += length
        return voicings

    def start_sequence(self):
        sequence = Sequence(self.config.resolution, bpm=self.bpm, length=self.length)
        sequence.create_track()
        sequence.enable_gm_soundset(0)
        sequence.set_track_name(0, self.config.track_name)
        sequence.set_tempo(0, self.bpm)
        sequence.set_omni(0, True)
        sequence.set_poly(0, True)
        sequence.set_instrument(0, self.config.instrument)
        return sequence

    def compose(self):
        if self.sequence is not None:
            raise RuntimeError('Composer already composed its sequence')
        self.sequence = self.start_sequence()
        self.chords = self.chord_sequence()
        logger.debug('%d chords', len(self.chords))
        beat = 0.0
        for chord in self.chords:
            self.bass(chord, beat)
            self.melody(chord, beat)
            beat += chord.length
        self.sequence.set_end_of_track(0, self.sequence.ticks(beat + 4))
        return self.sequence

def generate(config=None, selector=None):
    return Composer(config, selector).compose()

def duration_milliseconds(sequence):
    '''Playing time of the composed length at the composed tempo'''
    if sequence.bpm is None or sequence.length is None:
        raise InvalidArgument('Sequence carries no tempo and length')
    if sequence.bpm <= 0:
        raise ZeroDivisionError(f'Tempo must be positive, got {sequence.bpm} bpm')
    return int(60000 / sequence.bpm * sequence.length)
