"""
Basic data types shared by the explore and generate steps.
"""

from __future__ import annotations
from enum import Enum
from typing import (
    Any,
    Dict,
    Iterable,
    List,
    Optional,
    Tuple,
)
from urllib.parse import urlsplit, urlunsplit

from .errors import InvalidURLError, UnsupportedSchemeError


class HTTPHeader:
    """Represents HTTP headers.

    Equivalent to net/http.Header in the Go stdlib."""

    #
    # Note: header names are case sensitive here. We store them the
    # way urllib hands them to us (e.g., "User-agent").
    #

    def __init__(self):
        self.headers: Dict[str, List[str]] = {}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HTTPHeader):
            return NotImplemented
        return self.headers == other.headers

    def __repr__(self) -> str:
        return f"HTTPHeader({self.headers!r})"

    @staticmethod
    def unmarshal(m: Any) -> HTTPHeader:
        msg = dict(m)
        o = HTTPHeader()
        for key, values in msg.items():
            key = str(key)
            if isinstance(values, str):
                values = [values]
            o.headers[key] = [str(v) for v in values]
        return o

    @staticmethod
    def from_items(items: Iterable[Tuple[str, str]]) -> HTTPHeader:
        """Converts a sequence of (key, value) pairs to headers."""
        out = HTTPHeader()
        for key, value in items:
            out.append(key, value)
        return out

    def clone(self) -> HTTPHeader:
        """Returns a clone of the original headers."""
        out = HTTPHeader()
        for key, values in self.headers.items():
            out.headers[key] = values[:]
        return out

    def append(self, key: str, value: str):
        """Appends the given header value to the values for the given key."""
        self.headers.setdefault(key, [])
        self.headers[key].append(value)

    def get(self, key: str) -> str:
        """Returns the first value of the given header or an empty string.
        Unlike the rest of this class, the lookup is case insensitive."""
        for name, values in self.headers.items():
            if name.lower() == key.lower() and values:
                return values[0]
        return ""

    def to_pairs(self) -> List[Tuple[str, str]]:
        """Converts the headers to (key, value) pairs. Raises ValueError
        if any key does not have exactly one value."""
        out: List[Tuple[str, str]] = []
        for key, values in self.headers.items():
            if len(values) != 1:
                raise ValueError(
                    "request headers cannot contain zero or multiple values per key"
                )
            out.append((key, values[0]))
        return out

    @staticmethod
    def default() -> HTTPHeader:
        """Returns the default headers we use for measuring"""
        # Note: of course the following values (and especially the user-agent) will
        # eventually become older, but this is just a test helper, so...
        out = HTTPHeader()
        out.headers = {
            "Accept": [
                "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            ],
            "Accept-Language": [
                "en-US,en;q=0.9",
            ],
            "User-Agent": [
                "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/96.0.4664.110 Safari/537.36",
            ],
        }
        return out


class Scheme(Enum):
    """The URL schemes we know how to measure."""

    HTTP = "http"
    HTTPS = "https"

    def __str__(self) -> str:
        return self.value

    @property
    def port(self) -> int:
        """Returns the default port for this scheme."""
        if self is Scheme.HTTPS:
            return 443
        return 80

    @property
    def requires_tls(self) -> bool:
        """Returns whether we need a TLS handshake for this scheme."""
        return self is Scheme.HTTPS

    @staticmethod
    def parse(value: str) -> Scheme:
        """Parses the scheme or raises UnsupportedSchemeError."""
        try:
            return Scheme(value.lower())
        except ValueError:
            raise UnsupportedSchemeError(f"unsupported scheme: {value!r}") from None


class SimpleURL:
    """Simplified representation of a parsed URL. Only contains the
    fields we care about inside the test helper."""

    def __init__(self):
        self.scheme = Scheme.HTTP
        self.netloc = ""
        self.hostname = ""
        self.path = ""
        self.query = ""

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SimpleURL):
            return NotImplemented
        return self.tostring() == other.tostring()

    def __repr__(self) -> str:
        return f"SimpleURL({self.tostring()!r})"

    @staticmethod
    def parse(url: str) -> SimpleURL:
        """Parses the given input URL. Raises InvalidURLError if the URL
        cannot be parsed or has no hostname and UnsupportedSchemeError if
        the scheme is not one of those we measure."""
        try:
            parsed = urlsplit(url)
            hostname: Optional[str] = parsed.hostname
            # accessing the port validates it
            parsed.port
        except ValueError as exc:
            raise InvalidURLError(f"invalid URL {url!r}: {exc}") from exc
        out = SimpleURL()
        out.scheme = Scheme.parse(parsed.scheme)
        if not hostname:
            raise InvalidURLError(f"invalid URL {url!r}: no hostname")
        out.netloc = parsed.netloc
        out.hostname = hostname
        out.path = parsed.path
        out.query = parsed.query
        return out

    def tostring(self) -> str:
        """Returns a string representation of this URL."""
        return urlunsplit((str(self.scheme), self.netloc, self.path, self.query, ""))
