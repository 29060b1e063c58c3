"""
Exceptions raised by the test helper prototype.

Probe failures (TCP connect, TLS handshake) are never raised: they
are saved as data inside the measurements. What is raised here is the
failure to even ask the question (bad input, broken redirect chain,
DNS failure during generation).
"""


class THPError(Exception):
    """Base class for all the errors raised by this package."""


class InitialChecksError(THPError):
    """The URL did not pass the initial checks."""


class InvalidURLError(InitialChecksError):
    """The URL is invalid."""


class UnsupportedSchemeError(InitialChecksError):
    """We don't support the URL scheme."""


class NoSuchHostError(InitialChecksError):
    """The DNS resolution of the URL's domain failed."""


class ExploreError(THPError):
    """The HTTP transaction following redirects failed."""


class GenerateError(THPError):
    """Generating the endpoint measurements failed."""


class InternalConsistencyError(THPError):
    """We reached a state that previous steps should have made impossible."""
