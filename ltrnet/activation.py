"""
ltrnet/activation.py - Node activation functions

Every activation works element-wise on a numpy array holding the total
inputs of one layer, so a whole layer is evaluated in one call.
"""

import numpy as np

from .exceptions import ConfigurationError


class Activation:
    """Scalar function and its derivative, both taken at the total input"""
    name = None

    def output(self, x: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def derivative(self, x: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def __repr__(self):
        return f"{type(self).__name__}()"


class Identity(Activation):
    name = 'identity'

    def output(self, x):
        return np.asarray(x, dtype=float)

    def derivative(self, x):
        return np.ones_like(x, dtype=float)


class Sigmoid(Activation):
    name = 'sigmoid'

    def output(self, x):
        # tanh form does not overflow for large |x|
        return 0.5 * (1.0 + np.tanh(0.5 * np.asarray(x, dtype=float)))

    def derivative(self, x):
        s = self.output(x)
        return s * (1.0 - s)


class Tanh(Activation):
    name = 'tanh'

    def output(self, x):
        return np.tanh(x)

    def derivative(self, x):
        t = np.tanh(x)
        return 1.0 - t * t


class ReLU(Activation):
    name = 'relu'

    def output(self, x):
        return np.maximum(0.0, x)

    def derivative(self, x):
        return (np.asarray(x) > 0).astype(float)


class LeakyReLU(Activation):
    name = 'leakyrelu'

    def __init__(self, slope: float = 0.01):
        self.slope = slope

    def output(self, x):
        x = np.asarray(x, dtype=float)
        return np.where(x > 0, x, self.slope * x)

    def derivative(self, x):
        return np.where(np.asarray(x) > 0, 1.0, self.slope)


ACTIVATIONS = {
    cls.name: cls for cls in (Identity, Sigmoid, Tanh, ReLU, LeakyReLU)
}


def get_activation(name: str) -> Activation:
    """Look up an activation by (case-insensitive) name"""
    key = str(name).strip().lower().replace('_', '')
    if key not in ACTIVATIONS:
        raise ConfigurationError(
            f"Unknown activation {name!r}. Available: {', '.join(sorted(ACTIVATIONS))}"
        )
    return ACTIVATIONS[key]()
