import numpy as np
import pytest

from stochord.generation import Style

class FixedRng:
    '''Stands in for a numpy Generator, handing out queued uniform draws'''
    def __init__(self, *draws):
        self.draws = list(draws)
    
    def random(self, size=None):
        if size is None:
            return self.draws.pop(0)
        out, self.draws = self.draws[:size], self.draws[size:]
        return np.array(out)
    
    def integers(self, low, high, endpoint=False):
        return low

@pytest.fixture
def safe_style():
    '''Default tables without octave 0, so no key can push a note below 0'''
    defaults = Style()
    return Style(bass_octave_weights=(0, ) + defaults.bass_octave_weights[1:],
        treble_octave_weights=(0, ) + defaults.treble_octave_weights[1:])
