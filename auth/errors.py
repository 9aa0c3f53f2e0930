"""
auth/errors.py -- Exceptions raised inside the auth package.

Provider failures are exceptions at the client boundary (a network call either
returns a value or raises). AuthenticationFlow catches them and converts them
into Rejected outcomes, so nothing here escapes a completed callback.
"""


class ProviderError(Exception):
    """Base class for failed calls to the identity provider."""


class ProviderExchangeError(ProviderError):
    """The authorization code could not be exchanged for an access token."""


class ProviderProfileError(ProviderError):
    """The current-user profile could not be fetched with the access token."""


class NotConfiguredError(Exception):
    """Login was requested while no active GitHub connection is configured."""
