"""
ltrnet/trainer.py - Epoch loop: train, validate, report, persist
"""

import enum
import logging
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .algorithms import TrainingAlgorithm, get_algorithm
from .config import TrainerConfig
from .evaluator import Evaluator
from .exceptions import ConfigurationError, PersistenceError
from .model import Document, Query
from .report import Report

logger = logging.getLogger(__name__)


class TrainerState(enum.Enum):
    IDLE = 'idle'
    TRAINING = 'training'
    VALIDATING = 'validating'
    DONE = 'done'


class Trainer:
    """
    Drives one Ranker through `config.num_iterations` epochs.

    The ranking algorithm is a strategy: it builds the ranker and implements
    a single training sweep and the loss. The trainer owns everything else:
    validation with NDCG@k, best-score tracking, the report and the final
    model file.
    """

    def __init__(self, training: Sequence[Query], validation: Sequence[Query],
                 config: TrainerConfig,
                 algorithm: Optional[TrainingAlgorithm] = None,
                 report: Optional[Report] = None,
                 rng: Optional[np.random.Generator] = None):
        """
        Args:
            training: Training queries
            validation: Validation queries
            config: Validated configuration (see ltrnet.config.load_config)
            algorithm: Training strategy; defaults to `config.algorithm`
            report: Report sink; defaults to a Report on `config.report`
            rng: Random generator for weight initialization
        """
        self.config = config
        self.training_set: List[Query] = list(training)
        self.validation_set: List[Query] = list(validation)
        first = next((q for q in self.training_set if q.docs), None)
        if first is None:
            raise ConfigurationError("Training set has no documents")

        self.epoch_num = config.num_iterations
        self.batch_size = config.batch_size
        self.learning_rate = config.learning_rate
        self.regularization_rate = config.regularization_rate
        self.ndcg_k = config.ndcg_k
        self.model_file = config.model_file

        self.algorithm = algorithm or get_algorithm(config.algorithm)
        self.ranker = self.algorithm.build_ranker(
            first.feature_length, config, rng=rng
        )
        self.evaluator = Evaluator(self.ranker, self.ndcg_k, self.algorithm)
        self.report = report or Report(config.report.file, config.report.plot)

        self.max_score = 0.0
        self.history: Dict[str, list] = {'ndcg': [], 'train_losses': [], 'val_losses': []}
        self.state = TrainerState.IDLE

    def train(self) -> int:
        """One sweep of the training algorithm over the training set"""
        self.state = TrainerState.TRAINING
        return self.algorithm.train_epoch(
            self.ranker, self.training_set, self.batch_size,
            self.learning_rate, self.regularization_rate,
        )

    def calculate_loss(self) -> Tuple[float, float]:
        return (self.evaluator.loss(self.training_set),
                self.evaluator.loss(self.validation_set))

    def validate(self, epoch: int, k: int) -> float:
        self.state = TrainerState.VALIDATING
        new_score = self.evaluator.ndcg_avg(self.validation_set, k)
        if new_score > self.max_score:
            self.max_score = new_score

        train_loss, val_loss = self.calculate_loss()
        self.history['ndcg'].append(new_score)
        self.history['train_losses'].append(train_loss)
        self.history['val_losses'].append(val_loss)
        self.report.log(epoch, new_score, train_loss, val_loss)
        return new_score

    def sort_p(self, query: Query) -> List[Document]:
        return self.evaluator.sort_p(query)

    def train_and_validate(self) -> Dict[str, list]:
        """
        Run every epoch, close the report and write the model file

        Raises:
            PersistenceError: The model could not be written
            OSError: The report could not be written; the model is still saved
        """
        for epoch in range(1, self.epoch_num + 1):
            self.train()
            self.validate(epoch, self.ndcg_k)

        try:
            self.report.close()
        finally:
            # The model is written even when the report fails
            try:
                self.ranker.write_model(self.model_file)
            except PersistenceError:
                logger.error(f"Failed to persist model to {self.model_file}", exc_info=True)
                raise
            finally:
                self.state = TrainerState.DONE

        logger.info(f"Training finished: best NDCG@{self.ndcg_k}={self.max_score:.4f}")
        return self.history
