"""mnemos: a local snapshot-based version store."""

from .constants import MNEMOS_VERSION
from .repository import Repository

__version__ = MNEMOS_VERSION

__all__ = ["Repository", "__version__"]
