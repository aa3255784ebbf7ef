"""
Exception types raised by crate_trend.
"""


class TrendError(Exception):
    """Base class for crate_trend failures."""


class RepositoryError(TrendError):
    """A git clone, log or reset operation failed."""


class ParseError(TrendError, ValueError):
    """A semantic version or version requirement could not be parsed."""


class CodecError(TrendError):
    """A store header or chunk is malformed or truncated."""


class IntegrityError(TrendError):
    """A chunk digest does not match the one recorded in the header."""


class ManifestError(TrendError):
    """Workspace metadata could not be read from cargo."""
