"""
ltrnet/exceptions.py - Error taxonomy for training and inference
"""


class LTRError(Exception):
    """Base class for every error raised by ltrnet"""


class ConfigurationError(LTRError, ValueError):
    """Malformed or missing configuration; raised before a run starts"""


class DimensionMismatchError(LTRError, ValueError):
    """Feature (or target) vector length disagrees with the network"""


class PersistenceError(LTRError, OSError):
    """The model artifact could not be written or read"""
