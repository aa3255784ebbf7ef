"""
Crate Trend

Historical direct and transitive dependent counts of crates, sampled from the
crates.io index repository.
"""

__version__ = "0.1.0"

from .cli import main

__all__ = ["main"]
