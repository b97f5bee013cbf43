'''Randomized-max weighted selection'''

import numpy as np

from stochord.errors import InvalidArgument

def make_rng(seed=None):
    return np.random.default_rng(seed)

class WeightedSelector:
    '''Owns the random stream for one composition run.
    Every biased choice goes through select(), plain draws through uniform() and integer().'''
    def __init__(self, rng=None):
        if rng is None or isinstance(rng, (int, np.integer)):
            rng = make_rng(rng)
        self.rng = rng
    
    def select(self, weights):
        '''Score each weight by an independent uniform(0,1) draw and return the index of the best score.
        Ties go to the lowest index.'''
        weights = np.asarray(weights, dtype=float)
        if weights.ndim != 1 or weights.size == 0:
            raise InvalidArgument('weights must be a non-empty sequence')
        if np.any(weights < 0) or np.any(np.isnan(weights)):
            raise InvalidArgument(f'weights must be non-negative, got {weights.tolist()}')
        scores = self.rng.random(weights.size) * weights
        return int(np.argmax(scores)) # argmax returns the first maximum
    
    def uniform(self):
        return float(self.rng.random())
    
    def integer(self, low, high):
        '''Uniform integer in [low, high], both inclusive'''
        if high < low:
            raise InvalidArgument(f'empty range [{low}, {high}]')
        return int(self.rng.integers(low, high, endpoint=True))
