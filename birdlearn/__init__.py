"""
birdlearn

Spaced-repetition and answer-checking core for the bird learning application.
The package exposes two engines: the adaptive scheduler, which decides what a
learner practises next and how mastery evolves, and the fuzzy answer matcher,
which decides whether a typed name counts as correct.
"""

__version__ = "0.1.0"
