"""
errors.py - Error types raised while checking and remediating media records.
"""


class CleanerError(Exception):
    """Base class for every error the cleaner records against a media record."""


class ValidationError(CleanerError):
    """A media record carries a missing or malformed URL."""


class TransportError(CleanerError):
    """A probe failed at the network level (DNS, TLS, timeout, redirects)."""


class PersistenceError(CleanerError):
    """The content store rejected a write."""
