"""
ltrnet/ranker.py - Rankers built on the feed-forward network

A Ranker turns the raw network into a ranking decision: a scalar score per
document (`predict`) and, for pairwise rankers, a preference score for two
documents (`predict_pair`).
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

import numpy as np

from .activation import get_activation
from .exceptions import DimensionMismatchError, PersistenceError
from .loss import ErrorFunction
from .network import Network
from .optimizer import get_optimizer
from .regularization import get_regularization

logger = logging.getLogger(__name__)


class Ranker:
    """Owns one Network and exposes the training hooks it needs"""
    name = None
    output_size = 1
    output_activation = 'identity'

    def __init__(self, feature_dim: int,
                 layers: Sequence[Tuple[int, str]] = ((10, 'sigmoid'),),
                 optimizer: str = 'sgd',
                 regularization: Optional[str] = None,
                 weight_init: str = 'xavier',
                 rng: Optional[np.random.Generator] = None,
                 network: Optional[Network] = None):
        """
        Args:
            feature_dim: Number of features of every document
            layers: (size, activation name) of each hidden layer
            optimizer: Optimizer name
            regularization: l1, l2 or None
            weight_init: Weight initialization strategy
            rng: Random generator for weight initialization
            network: Prebuilt network (used when loading a saved model)
        """
        self.feature_dim = int(feature_dim)
        if network is None:
            shape = [(size, get_activation(act)) for size, act in layers]
            shape.append((self.output_size, get_activation(self.output_activation)))
            network = Network(
                self.network_input_dim(self.feature_dim),
                shape,
                optimizer=get_optimizer(optimizer),
                regularization=get_regularization(regularization),
                weight_init=weight_init,
                rng=rng,
            )
        self.network = network

    @staticmethod
    def network_input_dim(feature_dim: int) -> int:
        return feature_dim

    def _check(self, features: Sequence[float]) -> np.ndarray:
        x = np.asarray(features, dtype=float)
        if x.shape != (self.feature_dim,):
            raise DimensionMismatchError(
                f"Ranker expects {self.feature_dim} features, got {x.size}"
            )
        return x

    def predict(self, features: Sequence[float]) -> float:
        """Relevance score of one document"""
        raise NotImplementedError

    def back_prop(self, target, error_func: ErrorFunction) -> None:
        self.network.back_prop(target, error_func)

    def update_weights(self, learning_rate: float, regularization_rate: float) -> None:
        self.network.update_weights(learning_rate, regularization_rate)

    def to_dict(self) -> dict:
        return {
            'ranker': self.name,
            'feature_dim': self.feature_dim,
            'network': self.network.state_dict(),
        }

    def write_model(self, filepath: Union[str, Path]) -> None:
        """Write topology and every edge weight as JSON"""
        try:
            directory = os.path.dirname(str(filepath))
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(filepath, 'w') as f:
                json.dump(self.to_dict(), f)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(f"Could not write model to {filepath}: {e}") from e
        logger.info(f"Model written to {filepath}")


class MLPRanker(Ranker):
    """Pointwise ranker: one identity output node regresses the label"""
    name = 'mlp'

    def predict(self, features):
        return float(self.network.forward(self._check(features))[0])


class SortNetRanker(Ranker):
    """
    SortNet preference network.

    The input is the concatenation of two documents' features and the two
    sigmoid outputs estimate "first is better" and "second is better". The
    preference score is output[0] - output[1], positive when the first
    document is preferred.

    L. Rigutini, T. Papini, M. Maggini, and F. Scarselli: SortNet: Learning to
    Rank by a Neural Preference Function. IEEE Transactions on Neural
    Networks, 22, pp. 1368-1380, 2011.
    """
    name = 'sortnet'
    output_size = 2
    output_activation = 'sigmoid'

    @staticmethod
    def network_input_dim(feature_dim):
        return 2 * feature_dim

    def forward_pair(self, features1, features2) -> np.ndarray:
        x = np.concatenate([self._check(features1), self._check(features2)])
        return self.network.forward(x)

    def predict_pair(self, features1, features2) -> float:
        out = self.forward_pair(features1, features2)
        return float(out[0] - out[1])

    def predict(self, features):
        # Preference over an all-zero reference document
        return self.predict_pair(features, np.zeros(self.feature_dim))


RANKERS = {cls.name: cls for cls in (MLPRanker, SortNetRanker)}


def load_ranker(filepath: Union[str, Path]) -> Ranker:
    """Rebuild a ranker from a model file, ready for inference"""
    try:
        with open(filepath, 'r') as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise PersistenceError(f"Could not read model from {filepath}: {e}") from e

    if not isinstance(data, dict):
        raise PersistenceError(f"Model file {filepath} does not hold a JSON object")

    name = data.get('ranker')
    if name not in RANKERS:
        raise PersistenceError(f"Unknown ranker {name!r} in {filepath}")

    try:
        network = Network.from_state_dict(data['network'])
        feature_dim = int(data['feature_dim'])
    except (KeyError, TypeError, ValueError) as e:
        raise PersistenceError(f"Malformed model file {filepath}: {e}") from e
    ranker_cls = RANKERS[name]
    if network.input_dim != ranker_cls.network_input_dim(feature_dim):
        raise PersistenceError(
            f"Model {filepath} has input dimension {network.input_dim}, "
            f"which does not fit {feature_dim} features"
        )
    return ranker_cls(feature_dim, network=network)
