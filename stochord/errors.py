'''Error kinds raised by stochord'''

class InvalidArgument(ValueError):
    '''Out of range note, velocity or index, bad note name or bad weights'''

class NoteOutOfRange(InvalidArgument):
    '''A drawn octave, pitch class and key landed outside MIDI notes 0-127'''
