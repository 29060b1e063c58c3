"""
Networking primitives.

Our rough objective here is to have these fundamental operations:

1. DNS lookup using getaddrinfo

2. TCP connect to a remote endpoint

3. TLS handshake given a TCP conn and a SNI

Each operation returns a Result wrapping either the value or a
Failure, because probe failures are data for us, not exceptions.
"""

from __future__ import annotations
from enum import Enum
import errno
import ipaddress
import logging
import socket
import ssl
from typing import (
    Generic,
    List,
    Optional,
    Tuple,
    TypeVar,
)
from urllib.parse import urlsplit


class Failure(Enum):
    """Represents a failure that occurred while measuring."""

    CONNECTION_REFUSED = "connection_refused"
    CONNECTION_RESET = "connection_reset"
    DNS_NO_ANSWER = "dns_no_answer"
    DNS_NXDOMAIN_ERROR = "dns_nxdomain_error"
    DNS_TEMPORARY_FAILURE = "dns_temporary_failure"
    EOF_ERROR = "eof_error"
    GENERIC_TIMEOUT_ERROR = "generic_timeout_error"
    HOST_UNREACHABLE = "host_unreachable"
    NETWORK_UNREACHABLE = "network_unreachable"
    SSL_FAILED_HANDSHAKE = "ssl_failed_handshake"
    SSL_INVALID_CERTIFICATE = "ssl_invalid_certificate"
    SSL_INVALID_HOSTNAME = "ssl_invalid_hostname"
    SSL_UNKNOWN_AUTHORITY = "ssl_unknown_authority"
    UNKNOWN_FAILURE = "unknown_failure"

    def __str__(self) -> str:
        return self.value


# Helper type to define a generic Result[T]
T = TypeVar("T")


class Result(Generic[T]):
    """Represents a result or a failure (like Rust's std::Result)."""

    def __init__(
        self, result: Optional[T], failure: Optional[Failure], detail: str = ""
    ):
        if result is None and failure is None:
            raise RuntimeError("both result and failure are None")
        if result is not None and failure is not None:
            raise RuntimeError("both failure and result are not None")
        self._result: Optional[T] = result
        self._failure: Optional[Failure] = failure
        self._detail = detail

    def __str__(self) -> str:
        """Provides a convenient string representation for logging"""
        if self.is_err():
            return self.failure_string()
        return "ok"

    def unwrap(self) -> T:
        """Returns the wrapped type or throws if this result is a failure."""
        if self._failure is not None:
            raise RuntimeError(self._failure)
        if self._result is None:
            raise RuntimeError("inconsistent result object")
        return self._result

    def failure(self) -> Optional[Failure]:
        """Returns the failure or None if this is a success."""
        return self._failure

    def failure_string(self) -> str:
        """Returns the failure as a string or throws if this is a success.

        Unmapped failures also carry the original error message so that
        the description is never just `unknown_failure`."""
        if self._result is not None:
            raise RuntimeError("inconsistent result object")
        if self._failure is None:
            raise RuntimeError("failure is none")
        if self._detail:
            return f"{self._failure}: {self._detail}"
        return str(self._failure)

    def is_err(self) -> bool:
        """Returns whether this result wraps an error."""
        return self._failure is not None

    def is_ok(self) -> bool:
        """Returns whether this result is OK."""
        return self._result is not None

    @staticmethod
    def from_failure(failure: Failure, detail: str = "") -> Result:
        """Constructs a new Result from a failure."""
        return Result(None, failure, detail)

    @staticmethod
    def from_result(value: T) -> Result:
        """Constructs a new Result from a result."""
        return Result(value, None)


def join_address_port(address: str, port: str) -> str:
    """Takes in input an address and a port and joins them."""
    if is_ip_addr(address) and is_ipv6(address):
        return f"[{address}]:{port}"
    return f"{address}:{port}"


class SplitAddressPortError(Exception):
    """Error when trying to split address and port."""


def split_address_port(epnt: str) -> Tuple[str, int]:
    """Takes in input an endpoint like '8.8.8.8:443' or '[::1]:443' and
    emits in output the corresponding address and port. Raises
    SplitAddressPortError in case epnt is not a valid endpoint."""
    try:
        purl = urlsplit("//" + epnt)
        port = purl.port
    except ValueError as exc:
        raise SplitAddressPortError(f"invalid endpoint: {epnt}") from exc
    if purl.hostname is None or port is None:
        raise SplitAddressPortError(f"invalid endpoint: {epnt}")
    return purl.hostname, port


def is_ip_addr(addr: str) -> bool:
    """Returns whether addr is an IP address."""
    try:
        ipaddress.ip_address(addr)
        return True
    except ValueError:
        return False


def is_ipv6(addr: str) -> bool:
    """Returns whether if addr is an IPv6 address. Raises ValueError in
    case addr is not a valid IP address."""
    ip = ipaddress.ip_address(addr)
    return ip.version == 6


def _family_for_address(addr: str) -> int:
    """Returns the appropriate socket family for address. Raises ValueError
    in case addr is not a valid IP addr."""
    return socket.AF_INET6 if is_ipv6(addr) else socket.AF_INET


def dns_lookup(domain: str) -> Result[List[str]]:
    """Performs a DNS lookup using the system resolver (i.e., getaddrinfo).

    The returned addresses are unique and in the order in which
    getaddrinfo returned them."""
    try:
        # Note: the port here is completely irrelevant
        results = socket.getaddrinfo(domain, 443, type=socket.SOCK_STREAM)
    except socket.gaierror as exc:
        if exc.args[0] == socket.EAI_NONAME:
            return Result.from_failure(Failure.DNS_NXDOMAIN_ERROR)
        if exc.args[0] == socket.EAI_AGAIN:
            return Result.from_failure(Failure.DNS_TEMPORARY_FAILURE)
        logging.warning(f"dns_lookup: unhandled failure: {exc}")
        return Result.from_failure(Failure.UNKNOWN_FAILURE, str(exc))
    except UnicodeError as exc:
        # the IDNA codec refuses the domain
        return Result.from_failure(Failure.UNKNOWN_FAILURE, str(exc))
    out: List[str] = []
    for _, _, _, _, addrport in results:
        if addrport[0] not in out:
            out.append(addrport[0])
    if not out:
        return Result.from_failure(Failure.DNS_NO_ANSWER)
    return Result.from_result(out)


def _map_socket_error(exc: OSError) -> Result:
    """Maps a socket level error to the corresponding failure."""
    if isinstance(exc, socket.timeout):
        return Result.from_failure(Failure.GENERIC_TIMEOUT_ERROR)
    if exc.errno == errno.ECONNREFUSED:
        return Result.from_failure(Failure.CONNECTION_REFUSED)
    # On a conn we have just established, ENOTCONN and EPIPE mean
    # that the peer has reset it
    if exc.errno in (errno.ECONNRESET, errno.ENOTCONN, errno.EPIPE):
        return Result.from_failure(Failure.CONNECTION_RESET)
    if exc.errno == errno.EHOSTUNREACH:
        return Result.from_failure(Failure.HOST_UNREACHABLE)
    if exc.errno == errno.ENETUNREACH:
        return Result.from_failure(Failure.NETWORK_UNREACHABLE)
    if exc.errno == errno.ETIMEDOUT:
        return Result.from_failure(Failure.GENERIC_TIMEOUT_ERROR)
    logging.warning(f"unhandled socket failure: {exc}")
    return Result.from_failure(Failure.UNKNOWN_FAILURE, str(exc))


def tcp_connect(endpoint: str, timeout: float = 15) -> Result[socket.socket]:
    """Connects to the given TCP endpoint. Raises OSError in case
    we cannot create a new socket."""
    addr, port = split_address_port(endpoint)
    conn = socket.socket(_family_for_address(addr))
    conn.settimeout(timeout)
    try:
        conn.connect((addr, port))
    except OSError as exc:
        conn.close()  # We own the socket unless we return it
        return _map_socket_error(exc)
    return Result.from_result(conn)


# See https://www.openssl.org/docs/man1.1.1/man1/verify.html
_X509_V_ERR_UNABLE_TO_GET_ISSUER_CERT_LOCALLY = 20
_X509_V_ERR_UNABLE_TO_VERIFY_LEAF_SIGNATURE = 21
_X509_V_ERR_DEPTH_ZERO_SELF_SIGNED_CERT = 18
_X509_V_ERR_SELF_SIGNED_CERT_IN_CHAIN = 19
_X509_V_ERR_HOSTNAME_MISMATCH = 62

_UNKNOWN_AUTHORITY_CODES = (
    _X509_V_ERR_UNABLE_TO_GET_ISSUER_CERT_LOCALLY,
    _X509_V_ERR_UNABLE_TO_VERIFY_LEAF_SIGNATURE,
    _X509_V_ERR_DEPTH_ZERO_SELF_SIGNED_CERT,
    _X509_V_ERR_SELF_SIGNED_CERT_IN_CHAIN,
)


def tls_handshake(
    conn: socket.socket,
    sni: str,
    alpns: Optional[List[str]] = None,
    cafile: str = "",
) -> Result[ssl.SSLSocket]:
    """Performs a TLS handshake over conn using the given SNI.

    We trust the system CAs plus, when cafile is set, the CAs in it.
    The returned TLS socket takes over conn. On failure we close what we
    have created and conn is left detached, so closing it is harmless."""
    ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    ctx.load_default_certs()
    if cafile:
        ctx.load_verify_locations(cafile=cafile)
    if alpns:
        ctx.set_alpn_protocols(alpns)
    ctx.check_hostname = True
    try:
        # Note: wrap_socket may already read from conn to refuse
        # data sent before the handshake, so it may fail too
        tlsconn = ctx.wrap_socket(
            conn, server_hostname=sni, do_handshake_on_connect=False
        )
    except OSError as exc:
        return _map_socket_error(exc)
    try:
        tlsconn.do_handshake()
    except ssl.SSLCertVerificationError as exc:
        tlsconn.close()
        if exc.verify_code == _X509_V_ERR_HOSTNAME_MISMATCH:
            return Result.from_failure(Failure.SSL_INVALID_HOSTNAME)
        if exc.verify_code in _UNKNOWN_AUTHORITY_CODES:
            return Result.from_failure(Failure.SSL_UNKNOWN_AUTHORITY)
        return Result.from_failure(Failure.SSL_INVALID_CERTIFICATE)
    except (ssl.SSLEOFError, ssl.SSLZeroReturnError):
        tlsconn.close()
        return Result.from_failure(Failure.EOF_ERROR)
    except ssl.SSLError as exc:
        tlsconn.close()
        return Result.from_failure(Failure.SSL_FAILED_HANDSHAKE, exc.reason or "")
    except OSError as exc:
        tlsconn.close()
        return _map_socket_error(exc)
    return Result.from_result(tlsconn)
