"""flyover package root."""

from flyover.exceptions import NeverRaise, NeverThrown
from flyover.invariants import never

__all__ = ["__version__", "NeverRaise", "NeverThrown", "never"]

__version__ = "0.1.0"
