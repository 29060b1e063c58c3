from __future__ import annotations

import pytest

from thp.errors import ExploreError
from thp.explore import (
    HTTPRequest,
    HTTPResponse,
    RedirectChainExplorer,
    RoundTrip,
    explore,
)
from thp.model import SimpleURL


def test_no_redirect_returns_single_round_trip(http_server, options):
    rts = RedirectChainExplorer(options).explore(f"{http_server}/plain")

    assert len(rts) == 1
    assert rts[0].request.method == "GET"
    assert rts[0].request.url.tostring() == f"{http_server}/plain"
    assert rts[0].request.response is None
    assert rts[0].response.status_code == 200
    assert rts[0].response.request is rts[0].request
    assert rts[0].body == b"hello, world"


def test_redirect_chain_is_in_chronological_order(http_server, options):
    rts = RedirectChainExplorer(options).explore(f"{http_server}/start")

    paths = [rt.request.url.path for rt in rts]
    assert paths == ["/start", "/middle", "/final"]
    assert [rt.response.status_code for rt in rts] == [302, 301, 200]
    # each request points back to the response that caused it
    assert rts[0].request.response is None
    assert rts[1].request.response is rts[0].response
    assert rts[2].request.response is rts[1].response


def test_only_the_last_round_trip_has_a_body(http_server, options):
    rts = RedirectChainExplorer(options).explore(f"{http_server}/start")

    assert [rt.body for rt in rts] == [b"", b"", b"final page"]


def test_cookies_are_folded_into_later_requests(http_server, options, received_cookies):
    rts = RedirectChainExplorer(options).explore(f"{http_server}/start")

    assert rts[0].request.headers.get("Cookie") == ""
    assert rts[1].request.headers.get("Cookie") == "session=abc"
    assert rts[2].request.headers.get("Cookie") == "session=abc"
    assert received_cookies == ["", "session=abc", "session=abc"]


def test_request_headers_include_configured_headers(http_server, options):
    options.http_request_headers.headers["User-Agent"] = ["thp-test/1.0"]

    rts = RedirectChainExplorer(options).explore(f"{http_server}/plain")

    assert rts[0].request.headers.get("user-agent") == "thp-test/1.0"
    assert rts[0].request.headers.get("Host") == http_server[len("http://"):]


def test_error_status_is_a_valid_final_response(http_server, options):
    rts = RedirectChainExplorer(options).explore(f"{http_server}/to-missing")

    assert [rt.response.status_code for rt in rts] == [307, 404]
    assert rts[-1].body == b"missing"


def test_permanent_redirect_is_followed(http_server, options):
    rts = RedirectChainExplorer(options).explore(f"{http_server}/permanent")

    assert [rt.response.status_code for rt in rts] == [308, 200]
    assert rts[-1].request.url.path == "/final"
    assert rts[-1].body == b"final page"


def test_empty_final_body(http_server, options):
    rts = RedirectChainExplorer(options).explore(f"{http_server}/empty")

    assert len(rts) == 1
    assert rts[0].body == b""


def test_max_body_size_truncates_the_body(http_server, options):
    options.max_body_size = 5

    rts = RedirectChainExplorer(options).explore(f"{http_server}/plain")

    assert rts[0].body == b"hello"


def test_long_chain_within_the_limit(http_server, options):
    rts = RedirectChainExplorer(options).explore(f"{http_server}/count/10")

    assert len(rts) == 11
    assert rts[0].request.url.path == "/count/10"
    assert rts[-1].request.url.path == "/count/0"
    assert rts[-1].body == b"done"


def test_too_many_redirects(http_server, options):
    options.max_redirects = 3

    with pytest.raises(ExploreError):
        RedirectChainExplorer(options).explore(f"{http_server}/count/5")


def test_zero_redirects_allowed(http_server, options):
    options.max_redirects = 0

    assert len(explore(f"{http_server}/plain", options)) == 1
    with pytest.raises(ExploreError):
        explore(f"{http_server}/count/1", options)


def test_redirect_loop(http_server, options):
    with pytest.raises(ExploreError):
        RedirectChainExplorer(options).explore(f"{http_server}/loop")


def test_redirect_to_unsupported_scheme(http_server, options):
    with pytest.raises(ExploreError):
        RedirectChainExplorer(options).explore(f"{http_server}/ftp")


def test_connection_failure(options):
    # nothing should be listening on port 9 of the loopback
    with pytest.raises(ExploreError):
        RedirectChainExplorer(options).explore("http://127.0.0.1:9/")


def test_non_http_url_is_never_fetched(tmp_path, options):
    path = tmp_path / "local.txt"
    path.write_text("local file")

    with pytest.raises(ExploreError):
        explore(path.as_uri(), options)


@pytest.mark.parametrize("url", ["", "http://", "not a url"])
def test_invalid_url(url, options):
    with pytest.raises(ExploreError):
        explore(url, options)


def _chain(n: int) -> HTTPResponse:
    """Builds a backward-linked chain of n hops by hand."""
    prev = None
    for idx in range(n):
        req = HTTPRequest()
        req.url = SimpleURL.parse(f"http://example.test/{idx}")
        req.response = prev
        prev = HTTPResponse(req)
        prev.status_code = 302 if idx < n - 1 else 200
    assert prev is not None
    return prev


@pytest.mark.parametrize("n", [1, 2, 5])
def test_rearrange_reverses_the_backward_walk(n):
    rts = RedirectChainExplorer._rearrange(_chain(n), b"body")

    assert len(rts) == n
    assert all(isinstance(rt, RoundTrip) for rt in rts)
    assert [rt.request.url.path for rt in rts] == [f"/{idx}" for idx in range(n)]
    assert [bool(rt.body) for rt in rts] == [False] * (n - 1) + [True]
