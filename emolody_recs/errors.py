"""
Error taxonomy for the Emolody recommendation core.

Catalog errors are raised by the external collaborators (catalog search,
library history, playlist sink) and absorbed by the engine, the extractor
and the session. Only configuration errors and a rejected concurrent
generation ever reach the caller.
"""


class EmolodyError(Exception):
    """Base class for all package errors."""


class ConfigError(EmolodyError):
    """Static tables or settings are missing or malformed."""


class CatalogError(EmolodyError):
    """A call to an external music service failed."""


class AuthError(CatalogError):
    """Not authenticated, or the token was rejected."""


class NetworkError(CatalogError):
    """Transient failure talking to the service."""


class EmptyResult(CatalogError):
    """The call succeeded but returned nothing usable."""


class GenerationInProgress(EmolodyError):
    """A generation is already running for this session."""
