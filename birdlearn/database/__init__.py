"""
SQL persistence for birdlearn mastery data.
"""

from birdlearn.database.base import Base, metadata
from birdlearn.database.models import BirdModel, UserBirdModel, LearningSessionModel
from birdlearn.database.session import (
    create_engine_from_config, get_session_factory, init_models, drop_models
)
from birdlearn.database.repository import SqlMasteryStore

__all__ = [
    'Base',
    'metadata',
    'BirdModel',
    'UserBirdModel',
    'LearningSessionModel',
    'create_engine_from_config',
    'get_session_factory',
    'init_models',
    'drop_models',
    'SqlMasteryStore',
]
