"""
ltrnet/algorithms.py - Training algorithms plugged into the Trainer loop

An algorithm knows which Ranker it trains, how one epoch over the training
queries drives forward/backward/update on that ranker, and how to compute
its loss over a query set.
"""

import logging
import random
from typing import Optional, Sequence

import numpy as np

from .exceptions import ConfigurationError
from .loss import ErrorFunction, Square
from .model import Document, Query
from .ranker import MLPRanker, Ranker, SortNetRanker

logger = logging.getLogger(__name__)


class TrainingAlgorithm:
    """Strategy interface used by Trainer"""
    name = None
    ranker_class = Ranker

    def __init__(self, error_func: Optional[ErrorFunction] = None):
        self.error_func = error_func or Square()

    def build_ranker(self, feature_dim: int, config,
                     rng: Optional[np.random.Generator] = None) -> Ranker:
        return self.ranker_class(
            feature_dim,
            layers=config.layers,
            optimizer=config.params.optimizer,
            regularization=config.regularization,
            weight_init=config.params.weight_init,
            rng=rng,
        )

    def train_epoch(self, ranker: Ranker, queries: Sequence[Query], batch_size: int,
                    learning_rate: float, regularization_rate: float) -> int:
        """Run one sweep over `queries`; returns the number of samples trained"""
        raise NotImplementedError

    def calculate_loss(self, ranker: Ranker, queries: Sequence[Query]) -> float:
        raise NotImplementedError


class PointwiseAlgorithm(TrainingAlgorithm):
    """Regress every document's label with a single-output network"""
    name = 'mlp'
    ranker_class = MLPRanker

    def train_epoch(self, ranker, queries, batch_size, learning_rate, regularization_rate):
        num_trained = 0
        for query in queries:
            for doc in query.docs:
                ranker.predict(doc.features)
                ranker.back_prop(doc.label, self.error_func)
                num_trained += 1
                if batch_size and num_trained % batch_size == 0:
                    ranker.update_weights(learning_rate, regularization_rate)
        ranker.update_weights(learning_rate, regularization_rate)
        return num_trained

    def calculate_loss(self, ranker, queries):
        errors = [
            float(self.error_func.error(ranker.predict(doc.features), doc.label))
            for query in queries for doc in query.docs
        ]
        return float(np.mean(errors)) if errors else 0.0


class SortNetAlgorithm(TrainingAlgorithm):
    """
    Pairwise SortNet training.

    Every document of a query is paired with a partner drawn uniformly from
    the query's other documents. Pairs with equal labels carry no signal and
    are skipped. A pair is trained only while the preference disagrees with
    the labels or is below the margin: delta * prediction < threshold.
    """
    name = 'sortnet'
    ranker_class = SortNetRanker
    targets = ((1.0, 0.0), (0.0, 1.0))

    def __init__(self, error_func: Optional[ErrorFunction] = None,
                 threshold: float = 0.5, rng: Optional[random.Random] = None):
        super().__init__(error_func)
        self.threshold = threshold
        self.rng = rng if rng is not None else random.Random()

    def draw_partner(self, docs: Sequence[Document], i: int) -> Document:
        """Uniform draw among docs other than docs[i]"""
        j = self.rng.randrange(len(docs) - 1)
        if j >= i:
            j += 1
        return docs[j]

    def train_pair(self, ranker: SortNetRanker, doc1: Document, doc2: Document) -> bool:
        """Back-propagate one pair if it needs training; True when it did"""
        delta = doc1.label - doc2.label
        if delta == 0:
            return False

        prediction = ranker.predict_pair(doc1.features, doc2.features)
        if delta * prediction >= self.threshold:
            return False

        target = self.targets[0] if delta > 0 else self.targets[1]
        ranker.back_prop(target, self.error_func)
        return True

    def train_epoch(self, ranker, queries, batch_size, learning_rate, regularization_rate):
        num_trained = 0
        for query in queries:
            docs = query.docs
            if len(docs) < 2:
                continue
            for i, doc1 in enumerate(docs):
                doc2 = self.draw_partner(docs, i)
                if not self.train_pair(ranker, doc1, doc2):
                    continue
                num_trained += 1
                if batch_size and num_trained % batch_size == 0:
                    ranker.update_weights(learning_rate, regularization_rate)

        # Flush the remainder (or the whole sweep when batch_size is 0)
        ranker.update_weights(learning_rate, regularization_rate)
        logger.debug(f"SortNet sweep trained {num_trained} pairs")
        return num_trained

    def calculate_loss(self, ranker, queries):
        total = 0.0
        num_pairs = 0
        for query in queries:
            docs = query.docs
            for i in range(len(docs)):
                for j in range(i + 1, len(docs)):
                    delta = docs[i].label - docs[j].label
                    if delta == 0:
                        continue
                    target = self.targets[0] if delta > 0 else self.targets[1]
                    output = ranker.forward_pair(docs[i].features, docs[j].features)
                    total += float(np.sum(self.error_func.error(output, target)))
                    num_pairs += 1
        return total / num_pairs if num_pairs else 0.0


ALGORITHMS = {cls.name: cls for cls in (SortNetAlgorithm, PointwiseAlgorithm)}


def get_algorithm(name: str, **kwargs) -> TrainingAlgorithm:
    key = str(name).strip().lower()
    if key not in ALGORITHMS:
        raise ConfigurationError(
            f"Unknown algorithm {name!r}. Available: {', '.join(sorted(ALGORITHMS))}"
        )
    return ALGORITHMS[key](**kwargs)
