"""
ltrnet/optimizer.py - Per-edge stateful update rules

An optimizer instance belongs to one layer of the network and keeps one state
slot per incoming edge of that layer (arrays shaped like the layer's weight
matrix). `optimize` turns the accumulated error derivative into the weight
delta; the network adds that delta (averaged over the batch) to the weights,
so every rule here returns a value that points *down* the gradient.
"""

from typing import Tuple, Type

import numpy as np

from .exceptions import ConfigurationError


class Optimizer:
    """Base update rule: state is created lazily from the layer shape"""
    name = None

    def __init__(self, shape: Tuple[int, ...]):
        self.shape = tuple(shape)

    def optimize(self, error_der: np.ndarray, learning_rate: float,
                 iteration: int) -> np.ndarray:
        """
        Compute the weight delta for one update

        Args:
            error_der: Accumulated ∂C/∂w for every edge of the layer
            learning_rate: Step size
            iteration: Number of update calls so far, starting at 1

        Returns:
            Weight delta with the same shape as `error_der`
        """
        raise NotImplementedError


class SGD(Optimizer):
    name = 'sgd'

    def optimize(self, error_der, learning_rate, iteration):
        return -learning_rate * error_der


class Momentum(Optimizer):
    name = 'momentum'

    def __init__(self, shape, momentum: float = 0.9):
        super().__init__(shape)
        self.momentum = momentum
        self.velocity = np.zeros(self.shape)

    def optimize(self, error_der, learning_rate, iteration):
        self.velocity = self.momentum * self.velocity - learning_rate * error_der
        return self.velocity.copy()


class Nesterov(Optimizer):
    name = 'nesterov'

    def __init__(self, shape, momentum: float = 0.9):
        super().__init__(shape)
        self.momentum = momentum
        self.velocity = np.zeros(self.shape)

    def optimize(self, error_der, learning_rate, iteration):
        previous = self.velocity
        self.velocity = self.momentum * self.velocity - learning_rate * error_der
        return -self.momentum * previous + (1 + self.momentum) * self.velocity


class AdaGrad(Optimizer):
    name = 'adagrad'
    eps = 1e-8

    def __init__(self, shape):
        super().__init__(shape)
        self.sum_sq = np.zeros(self.shape)

    def optimize(self, error_der, learning_rate, iteration):
        self.sum_sq += error_der ** 2
        return -learning_rate * error_der / (np.sqrt(self.sum_sq) + self.eps)


class RMSProp(Optimizer):
    name = 'rmsprop'
    eps = 1e-8

    def __init__(self, shape, decay: float = 0.9):
        super().__init__(shape)
        self.decay = decay
        self.mean_sq = np.zeros(self.shape)

    def optimize(self, error_der, learning_rate, iteration):
        self.mean_sq = self.decay * self.mean_sq + (1 - self.decay) * error_der ** 2
        return -learning_rate * error_der / (np.sqrt(self.mean_sq) + self.eps)


class AdaDelta(Optimizer):
    """AdaDelta ignores the learning rate; step size comes from past deltas"""
    name = 'adadelta'
    eps = 1e-6

    def __init__(self, shape, decay: float = 0.95):
        super().__init__(shape)
        self.decay = decay
        self.mean_sq_grad = np.zeros(self.shape)
        self.mean_sq_delta = np.zeros(self.shape)

    def optimize(self, error_der, learning_rate, iteration):
        self.mean_sq_grad = self.decay * self.mean_sq_grad + (1 - self.decay) * error_der ** 2
        delta = -(np.sqrt(self.mean_sq_delta + self.eps)
                  / np.sqrt(self.mean_sq_grad + self.eps)) * error_der
        self.mean_sq_delta = self.decay * self.mean_sq_delta + (1 - self.decay) * delta ** 2
        return delta


class Adam(Optimizer):
    name = 'adam'

    def __init__(self, shape, beta1: float = 0.9, beta2: float = 0.999,
                 epsilon: float = 1e-8):
        super().__init__(shape)
        self.beta1 = beta1
        self.beta2 = beta2
        self.epsilon = epsilon
        self.m = np.zeros(self.shape)
        self.v = np.zeros(self.shape)

    def optimize(self, error_der, learning_rate, iteration):
        self.m = self.beta1 * self.m + (1 - self.beta1) * error_der
        self.v = self.beta2 * self.v + (1 - self.beta2) * error_der ** 2

        # Bias correction uses the network-wide update count
        m_hat = self.m / (1 - self.beta1 ** iteration)
        v_hat = self.v / (1 - self.beta2 ** iteration)

        return -learning_rate * m_hat / (np.sqrt(v_hat) + self.epsilon)


OPTIMIZERS = {
    cls.name: cls
    for cls in (SGD, Momentum, Nesterov, AdaGrad, RMSProp, AdaDelta, Adam)
}


def get_optimizer(name: str) -> Type[Optimizer]:
    """
    Return the optimizer class (the factory) registered under `name`.
    The network instantiates it once per layer.
    """
    key = str(name).strip().lower()
    if key not in OPTIMIZERS:
        raise ConfigurationError(
            f"Unknown optimizer {name!r}. Available: {', '.join(sorted(OPTIMIZERS))}"
        )
    return OPTIMIZERS[key]
