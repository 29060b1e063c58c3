"""
Generate is the third step of the test helper algorithm.

Given the observed round trips, we generate measurement targets and
execute those measurements so the probe has a benchmark.
"""

from __future__ import annotations
import concurrent.futures
import contextlib
from dataclasses import dataclass
import functools
import itertools
import logging
from typing import (
    List,
    Optional,
)

from . import netx
from .errors import GenerateError, InternalConsistencyError
from .explore import RoundTrip
from .model import SimpleURL
from .options import Options
from .tabulatex import Tabular


#
# Implementation note: OONI uses None to indicate no error and
# we do the same here. A failure is always a non-empty string.
#


@dataclass(frozen=True)
class TCPConnectMeasurement:
    """A TCP connect measurement."""

    failure: Optional[str] = None


@dataclass(frozen=True)
class TLSHandshakeMeasurement:
    """A TLS handshake measurement."""

    failure: Optional[str] = None


class DNSMeasurement:
    """A DNS measurement."""

    def __init__(self, domain: str, addresses: List[str]):
        # Domain is the domain we wanted to resolve.
        self.domain = domain

        # Addresses contains the resolved addresses.
        self.addresses = addresses


class HTTPEndpointMeasurement:
    """A measurement of a specific HTTP endpoint."""

    def __init__(
        self,
        endpoint: str,
        tcp_connect: TCPConnectMeasurement,
        tls_handshake: Optional[TLSHandshakeMeasurement] = None,
    ):
        # Endpoint is the endpoint we're measuring.
        self.endpoint = endpoint

        # TCPConnect is the related TCP connect measurement.
        self.tcp_connect = tcp_connect

        # TLSHandshake is the related TLS handshake measurement
        # or None if we did not attempt a TLS handshake.
        self.tls_handshake = tls_handshake


class URLMeasurement:
    """A measurement of a given URL that includes connectivity
    measurement for each endpoint implied by the given URL."""

    def __init__(
        self,
        url: str,
        round_trip: RoundTrip,
        dns: DNSMeasurement,
        endpoints: List[HTTPEndpointMeasurement],
    ):
        self.url = url
        self.round_trip = round_trip
        self.dns = dns
        self.endpoints = endpoints

    def as_tabular(self) -> Tabular:
        """Converts this measurement to a tabular with one row per endpoint."""
        out = Tabular()
        for epnt in self.endpoints:
            tls = ""
            if epnt.tls_handshake is not None:
                tls = epnt.tls_handshake.failure or "ok"
            out.appendrow(
                [
                    ("url", self.url),
                    ("endpoint", epnt.endpoint),
                    ("tcp", epnt.tcp_connect.failure or "ok"),
                    ("tls", tls),
                ]
            )
        return out


class EndpointMeasurementGenerator:
    """Generates and runs the endpoint measurements of each round trip."""

    def __init__(self, options: Options):
        self._options = options
        # next() on itertools.count is atomic, which matters
        # when we're measuring endpoints in parallel
        self._idgen = itertools.count(1)

    def generate(self, rts: List[RoundTrip]) -> List[URLMeasurement]:
        """Takes in input a list of round trips and outputs a list of
        connectivity measurements for each of them.

        Raises GenerateError if we cannot resolve the domain of any
        of the round trips, in which case we return nothing."""
        out: List[URLMeasurement] = []
        for rt in rts:
            out.append(self._measure_url(rt))
        return out

    def _measure_url(self, rt: RoundTrip) -> URLMeasurement:
        """Resolves the domain and measures all the endpoints of a round trip."""
        url = rt.request.url
        domain = url.hostname
        if not domain:
            raise InternalConsistencyError(f"round trip without domain: {url}")
        id = next(self._idgen)
        res = netx.dns_lookup(domain)
        logging.info(f"[#{id}] lookup {domain}... {res}")
        if res.is_err():
            raise GenerateError(f"cannot resolve {domain}: {res.failure_string()}")
        addrs = res.unwrap()
        port = str(url.scheme.port)
        endpoints = [netx.join_address_port(addr, port) for addr in addrs]
        return URLMeasurement(
            url=url.tostring(),
            round_trip=rt,
            dns=DNSMeasurement(domain, addrs),
            endpoints=self._measure_endpoints(url, endpoints),
        )

    def _measure_endpoints(
        self, url: SimpleURL, endpoints: List[str]
    ) -> List[HTTPEndpointMeasurement]:
        """Measures the given endpoints, returning results in the same order."""
        parallelism = min(self._options.parallelism, len(endpoints))
        if parallelism <= 1:
            return [self._measure_endpoint(url, epnt) for epnt in endpoints]
        measure = functools.partial(self._measure_endpoint, url)
        with concurrent.futures.ThreadPoolExecutor(max_workers=parallelism) as pool:
            return list(pool.map(measure, endpoints))

    def _measure_endpoint(self, url: SimpleURL, endpoint: str) -> HTTPEndpointMeasurement:
        """Measures a single HTTP/HTTPS endpoint. The connection is
        closed before returning, whatever the outcome."""
        id = next(self._idgen)
        # "pconn" here should be read as "probably a conn"
        pconn = netx.tcp_connect(endpoint, self._options.timeout)
        logging.info(f"[#{id}] connect {endpoint}... {pconn}")
        if pconn.is_err():
            return HTTPEndpointMeasurement(
                endpoint, TCPConnectMeasurement(pconn.failure_string())
            )
        with contextlib.closing(pconn.unwrap()) as conn:
            if not url.scheme.requires_tls:
                return HTTPEndpointMeasurement(endpoint, TCPConnectMeasurement())
            sni = url.hostname
            ptconn = netx.tls_handshake(conn, sni, cafile=self._options.ca_file)
            logging.info(f"[#{id}] tls_handshake {endpoint} {sni}... {ptconn}")
            if ptconn.is_err():
                return HTTPEndpointMeasurement(
                    endpoint,
                    TCPConnectMeasurement(),
                    TLSHandshakeMeasurement(ptconn.failure_string()),
                )
            ptconn.unwrap().close()
            return HTTPEndpointMeasurement(
                endpoint, TCPConnectMeasurement(), TLSHandshakeMeasurement()
            )


def generate(rts: List[RoundTrip], options: Optional[Options] = None) -> List[URLMeasurement]:
    """Convenience function to generate measurements using the given options."""
    return EndpointMeasurementGenerator(options or Options()).generate(rts)
