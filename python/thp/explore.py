"""
Explore is the second step of the test helper algorithm.

Its objective is to enumerate all the URLs we can discover by redirection
from the original URL in the test list. Because the test list contains by
definition noisy data, we need this preprocessing step to learn all the
URLs that are actually implied by the original URL.

Through the explore step, we also learn about the final page on which
we land by following the given URL. This webpage is mainly useful to
search for block pages using the Web Connectivity algorithm.
"""

from __future__ import annotations
import http.client
import http.cookiejar
import logging
from typing import (
    Any,
    List,
    Optional,
)
import urllib.error
import urllib.request
from urllib.parse import urlsplit

from .errors import ExploreError, InternalConsistencyError, THPError
from .model import HTTPHeader, SimpleURL
from .options import Options


class HTTPRequest:
    """Snapshot of an HTTP request as it was sent.

    The headers also include cookies and all the headers that urllib
    adds on its own (e.g., Host). The response field is the response
    of the previous hop, i.e., the one that caused us to send this
    request, or None if this is the first request."""

    def __init__(self):
        self.method = ""
        self.url = SimpleURL()
        self.headers = HTTPHeader()
        self.response: Optional[HTTPResponse] = None

    @staticmethod
    def from_urllib(
        req: urllib.request.Request, previous: Optional[HTTPResponse]
    ) -> HTTPRequest:
        out = HTTPRequest()
        out.method = req.get_method()
        out.url = SimpleURL.parse(req.full_url)
        out.headers = HTTPHeader.from_items(req.header_items())
        out.response = previous
        return out


class HTTPResponse:
    """Snapshot of an HTTP response. The body is not here, since we
    only keep the body of the final response (see RoundTrip)."""

    def __init__(self, request: HTTPRequest):
        self.status_code = 0
        self.reason = ""
        self.headers = HTTPHeader()
        self.request = request

    @staticmethod
    def from_urllib(resp: http.client.HTTPResponse, req: HTTPRequest) -> HTTPResponse:
        out = HTTPResponse(req)
        out.status_code = resp.status
        out.reason = resp.reason
        out.headers = HTTPHeader.from_items(resp.headers.items())
        return out


class RoundTrip:
    """Describes a specific round trip."""

    def __init__(self, request: HTTPRequest, response: HTTPResponse, body: bytes):
        # Request is the original HTTP request.
        self.request = request

        # Response is the HTTP response. Use body to access the body.
        self.response = response

        # Body is the final response body. This field should only
        # be set for the final round trip and empty otherwise.
        self.body = body


class _RoundTripRecorder(urllib.request.BaseHandler):
    """Saves a snapshot of each request/response pair.

    Runs after the cookie processor added the Cookie header and before
    the error processor decides to follow a redirect, so it sees every
    hop in chronological order."""

    handler_order = 900

    def __init__(self):
        self.last: Optional[HTTPResponse] = None

    def http_response(self, request: urllib.request.Request, response: Any) -> Any:
        req = HTTPRequest.from_urllib(request, self.last)
        self.last = HTTPResponse.from_urllib(response, req)
        logging.info(
            f"explore: {req.method} {req.url.tostring()}... {self.last.status_code}"
        )
        return response

    https_response = http_response


class _RedirectHandler(urllib.request.HTTPRedirectHandler):
    """Follows redirects up to the configured limit, refusing to
    leave the http and https schemes."""

    def __init__(self, max_redirects: int):
        self.max_redirections = max_redirects

    def redirect_request(self, req, fp, code, msg, headers, newurl):
        if len(getattr(req, "redirect_dict", {})) >= self.max_redirections:
            raise urllib.error.HTTPError(
                req.full_url, code, f"stopped after {self.max_redirections} redirects",
                headers, fp,
            )
        scheme = urlsplit(newurl).scheme
        if scheme not in ("http", "https"):
            raise urllib.error.HTTPError(
                newurl, code, f"redirect to unsupported scheme: {scheme!r}",
                headers, fp,
            )
        # urllib only knows about 308 since Python 3.11 and 308 is
        # handled exactly like 307
        if code == 308:
            code = 307
        return super().redirect_request(req, fp, code, msg, headers, newurl)

    http_error_308 = urllib.request.HTTPRedirectHandler.http_error_302


class _NoRaiseErrorHandler(urllib.request.HTTPDefaultErrorHandler):
    """A 4xx or 5xx response is a valid final response for us."""

    def http_error_default(self, req, fp, code, msg, hdrs):
        return fp


class RedirectChainExplorer:
    """Follows the redirects starting from an URL and returns the
    list of round trips that occurred."""

    def __init__(self, options: Options):
        self._options = options

    def explore(self, url: str) -> List[RoundTrip]:
        """Returns a list of round trips sorted so that the first
        round trip is the first element in the list, and so on.

        Raises ExploreError if the HTTP transaction fails."""
        try:
            SimpleURL.parse(url)
        except THPError as exc:
            raise ExploreError(f"cannot explore {url}: {exc}") from exc
        recorder = _RoundTripRecorder()
        body = self._get(url, recorder)
        if recorder.last is None:
            raise InternalConsistencyError("explore: no response was recorded")
        return self._rearrange(recorder.last, body)

    def _new_opener(
        self, recorder: _RoundTripRecorder
    ) -> urllib.request.OpenerDirector:
        """Creates a new opener with its own cookie jar."""
        jar = http.cookiejar.CookieJar()
        proxies = None if self._options.use_env_proxies else {}
        opener = urllib.request.build_opener(
            urllib.request.ProxyHandler(proxies),
            urllib.request.HTTPCookieProcessor(jar),
            _RedirectHandler(self._options.max_redirects),
            _NoRaiseErrorHandler(),
            recorder,
        )
        opener.addheaders = self._options.http_request_headers.to_pairs()
        return opener

    def _get(self, url: str, recorder: _RoundTripRecorder) -> bytes:
        """Gets the given URL and returns the final response body."""
        opener = self._new_opener(recorder)
        try:
            with opener.open(url, timeout=self._options.timeout) as resp:
                if self._options.max_body_size > 0:
                    return resp.read(self._options.max_body_size)
                return resp.read()
        except THPError as exc:
            raise ExploreError(f"explore {url} failed: {exc}") from exc
        except (OSError, http.client.HTTPException, ValueError) as exc:
            # Note: urllib.error.URLError and HTTPError are OSError
            raise ExploreError(f"explore {url} failed: {exc}") from exc

    @staticmethod
    def _rearrange(resp: HTTPResponse, body: bytes) -> List[RoundTrip]:
        """Takes in input the final response of an HTTP transaction and
        its body, and produces in output a list of round trips sorted
        such that the first round trip is the first element in the list.

        We can only walk the chain backwards, so we collect the round
        trips from the last to the first and then reverse the list."""
        out: List[RoundTrip] = []
        cur: Optional[HTTPResponse] = resp
        while cur is not None:
            out.append(RoundTrip(cur.request, cur, body))
            body = b""  # only store it for the last response
            cur = cur.request.response
        out.reverse()
        return out


def explore(url: str, options: Optional[Options] = None) -> List[RoundTrip]:
    """Convenience function to explore url using the given options."""
    return RedirectChainExplorer(options or Options()).explore(url)
