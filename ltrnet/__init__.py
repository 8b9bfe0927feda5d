"""
ltrnet/__init__.py - Package initialization
"""

# Import main components for easier access
from .config import TrainerConfig, load_config
from .evaluator import Evaluator, sort_p
from .exceptions import ConfigurationError, DimensionMismatchError, LTRError, PersistenceError
from .model import Document, Query, read_letor
from .network import Network
from .ranker import MLPRanker, SortNetRanker, load_ranker
from .trainer import Trainer, TrainerState

__version__ = "0.1.0"
