"""
ltrnet/loss.py - Error functions between network outputs and targets
"""

import numpy as np

from .exceptions import ConfigurationError


class ErrorFunction:
    name = None

    def error(self, output, target):
        raise NotImplementedError

    def derivative(self, output, target):
        """∂error/∂output"""
        raise NotImplementedError


class Square(ErrorFunction):
    """Half squared error: (o - t)^2 / 2"""
    name = 'square'

    def error(self, output, target):
        diff = np.asarray(output, dtype=float) - np.asarray(target, dtype=float)
        return 0.5 * diff * diff

    def derivative(self, output, target):
        return np.asarray(output, dtype=float) - np.asarray(target, dtype=float)


class Entropy(ErrorFunction):
    """Binary cross entropy; outputs are expected in (0, 1)"""
    name = 'entropy'
    eps = 1e-10

    def error(self, output, target):
        o = np.clip(np.asarray(output, dtype=float), self.eps, 1.0 - self.eps)
        t = np.asarray(target, dtype=float)
        return -t * np.log(o) - (1.0 - t) * np.log(1.0 - o)

    def derivative(self, output, target):
        o = np.clip(np.asarray(output, dtype=float), self.eps, 1.0 - self.eps)
        t = np.asarray(target, dtype=float)
        return (o - t) / (o * (1.0 - o))


ERRORS = {'square': Square, 'entropy': Entropy}


def get_error(name: str) -> ErrorFunction:
    key = str(name).strip().lower()
    if key not in ERRORS:
        raise ConfigurationError(f"Unknown error function {name!r}")
    return ERRORS[key]()
