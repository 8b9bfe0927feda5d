"""
ltrnet/regularization.py - Weight penalties applied after each update
"""

from typing import Optional

import numpy as np

from .exceptions import ConfigurationError


class Regularization:
    """Stateless penalty; only its derivative w.r.t. the weight is needed"""
    name = None

    def derivative(self, weight: np.ndarray) -> np.ndarray:
        raise NotImplementedError


class L1(Regularization):
    """Lasso penalty. Weights it drives across zero are pruned by the network."""
    name = 'l1'

    def derivative(self, weight):
        return np.sign(weight)


class L2(Regularization):
    name = 'l2'

    def derivative(self, weight):
        return np.asarray(weight, dtype=float)


REGULARIZATIONS = {'l1': L1, 'l2': L2}


def get_regularization(name: Optional[str]) -> Optional[Regularization]:
    """Return the penalty named `name`, or None when regularization is off"""
    if name is None:
        return None
    key = str(name).strip().lower()
    if key in ('', 'none'):
        return None
    if key not in REGULARIZATIONS:
        raise ConfigurationError(
            f"Unknown regularization {name!r}. Available: l1, l2, none"
        )
    return REGULARIZATIONS[key]()
