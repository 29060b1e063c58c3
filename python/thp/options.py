"""
Options shared by the explore and generate steps.
"""

from __future__ import annotations
import json
import os
from typing import Any

from .model import HTTPHeader


class Options:
    """Contains options for the test helper.

    A single instance is constructed by the caller and passed by
    reference to the explorer and to the generator."""

    def __init__(self):
        self.http_request_headers = HTTPHeader.default()
        # Same default timeout used by ooniprobe
        self.timeout = 15.0
        # Same default as Go's net/http client
        self.max_redirects = 10
        self.use_env_proxies = True
        # Zero means read the whole body
        self.max_body_size = 0
        # One means measuring the endpoints sequentially
        self.parallelism = 1
        # Additional CAs to trust, besides the system ones
        self.ca_file = ""

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Options):
            return NotImplemented
        return self.__dict__ == other.__dict__

    @staticmethod
    def unmarshal(m: Any) -> Options:
        msg = dict(m)
        o = Options()
        if "http_request_headers" in msg:
            o.http_request_headers = HTTPHeader.unmarshal(
                msg.get("http_request_headers", {}) or {}
            )
        o.timeout = float(msg.get("timeout", o.timeout))
        o.max_redirects = int(msg.get("max_redirects", o.max_redirects))
        o.use_env_proxies = bool(msg.get("use_env_proxies", o.use_env_proxies))
        o.max_body_size = int(msg.get("max_body_size", o.max_body_size))
        o.parallelism = int(msg.get("parallelism", o.parallelism))
        o.ca_file = str(msg.get("ca_file", o.ca_file) or "")
        o.validate()
        return o

    @staticmethod
    def load(filepath: str) -> Options:
        """Loads options from the given JSON file."""
        with open(filepath, "rb") as filep:
            return Options.unmarshal(json.load(filep))

    def validate(self):
        """Raises ValueError if any option value does not make sense."""
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.max_redirects < 0:
            raise ValueError("max_redirects cannot be negative")
        if self.max_body_size < 0:
            raise ValueError("max_body_size cannot be negative")
        if self.parallelism < 1:
            raise ValueError("parallelism must be at least one")
        if self.ca_file and not os.path.isfile(self.ca_file):
            raise ValueError(f"no such CA file: {self.ca_file}")

    def clone(self) -> Options:
        """Returns a clone of the current options."""
        out = Options()
        out.http_request_headers = self.http_request_headers.clone()
        out.timeout = self.timeout
        out.max_redirects = self.max_redirects
        out.use_env_proxies = self.use_env_proxies
        out.max_body_size = self.max_body_size
        out.parallelism = self.parallelism
        out.ca_file = self.ca_file
        return out

    def clone_and_merge(self, other: Options) -> Options:
        """Clones the current options and merges them with the
        other options ensuring we only emit changes."""
        default = Options()
        out = self.clone()
        if other.http_request_headers != default.http_request_headers:
            out.http_request_headers = other.http_request_headers.clone()
        if other.timeout != default.timeout:
            out.timeout = other.timeout
        if other.max_redirects != default.max_redirects:
            out.max_redirects = other.max_redirects
        if other.use_env_proxies != default.use_env_proxies:
            out.use_env_proxies = other.use_env_proxies
        if other.max_body_size != default.max_body_size:
            out.max_body_size = other.max_body_size
        if other.parallelism != default.parallelism:
            out.parallelism = other.parallelism
        if other.ca_file != default.ca_file:
            out.ca_file = other.ca_file
        return out
