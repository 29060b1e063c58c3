"""
Test helper prototype.

Given a URL, discovers every URL reached by following redirects and,
for each of them, measures DNS resolution plus TCP connect and TLS
handshake for every resolved address.
"""

from .errors import (
    ExploreError,
    GenerateError,
    InitialChecksError,
    InternalConsistencyError,
    InvalidURLError,
    NoSuchHostError,
    THPError,
    UnsupportedSchemeError,
)
from .explore import RedirectChainExplorer, RoundTrip, explore
from .generate import EndpointMeasurementGenerator, URLMeasurement, generate
from .initialchecks import initial_checks
from .options import Options
