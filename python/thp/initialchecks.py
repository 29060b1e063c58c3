"""
Initial checks: the first step of the test helper algorithm.

We make sure we can parse the URL, we handle the scheme, and the domain
name inside the URL's authority is valid. If these preliminary checks
fail, there's no point in continuing.
"""

from __future__ import annotations
import logging

from . import netx
from .errors import NoSuchHostError
from .model import SimpleURL


def initial_checks(url: str) -> SimpleURL:
    """Checks whether the URL is valid and whether the domain inside
    the URL is an existing one. Returns the parsed URL.

    Raises InvalidURLError, UnsupportedSchemeError or NoSuchHostError."""
    parsed = SimpleURL.parse(url)
    #
    # Assumptions:
    #
    # 1. the resolver will cache the resolution for later
    #
    # 2. an IP address does not cause an error because getaddrinfo
    # just returns the address itself
    #
    res = netx.dns_lookup(parsed.hostname)
    logging.info(f"initial checks: lookup {parsed.hostname}... {res}")
    if res.is_err():
        raise NoSuchHostError(f"no such host: {parsed.hostname} ({res})")
    return parsed
