# Overview: Exception taxonomy shared by the services, routes and realtime hub.

"""
Storefront error types.

Services raise these and never retry locally; routes translate them into
HTTP status codes:

- NotFoundError      -> 404 (or 401 when resolving credentials)
- AuthError          -> 401
- QueryTimeoutError  -> 503
- StoreError         -> 500
- RandomSourceError  -> 500
"""


class StorefrontError(Exception):
    """Base class for all storefront errors."""


class NotFoundError(StorefrontError):
    """No row matched the lookup."""


class StoreError(StorefrontError):
    """The database rejected or failed to run a statement."""


class QueryTimeoutError(StoreError, TimeoutError):
    """A database operation ran past its time bound and was abandoned."""


class RandomSourceError(StorefrontError):
    """The operating system's secure random source is unavailable."""


class AuthError(StorefrontError):
    """Password did not match the stored hash."""
