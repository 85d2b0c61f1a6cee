"""Exception types raised while replaying a recorded dataset.

Out-of-range frame ordinals are not errors: loader methods return ``None``.
Image decode failures are absorbed by the loader and never surface here.
"""


class ReplayError(Exception):
    """Base class for dataset replay failures."""


class DatasetIOError(ReplayError, OSError):
    """Dataset root, file listing, or structured log is unusable."""


class LoadError(ReplayError, ValueError):
    """Structured packet log could not be parsed."""


class DecodeError(ReplayError, ValueError):
    """Edge map or bounding-box file is present but corrupt."""
