"""
Practice games for birdlearn: recognition rounds and typed recall.
"""

from birdlearn.practice.service import (
    PracticeService, RecognitionResult, RoundScore, RoundResult, RecallVerdict
)

__all__ = ['PracticeService', 'RecognitionResult', 'RoundScore', 'RoundResult', 'RecallVerdict']
