from __future__ import annotations

import json

from thp.explore import HTTPRequest, HTTPResponse, RoundTrip
from thp.generate import (
    DNSMeasurement,
    HTTPEndpointMeasurement,
    TCPConnectMeasurement,
    TLSHandshakeMeasurement,
    URLMeasurement,
)
from thp.model import HTTPHeader, SimpleURL
from thp.report import render, render_json, render_tabular, render_text
from thp.tabulatex import Tabular


def _measurement() -> URLMeasurement:
    req = HTTPRequest()
    req.method = "GET"
    req.url = SimpleURL.parse("https://example.test/")
    req.headers = HTTPHeader.from_items([("Host", "example.test")])
    resp = HTTPResponse(req)
    resp.status_code = 200
    resp.reason = "OK"
    return URLMeasurement(
        url="https://example.test/",
        round_trip=RoundTrip(req, resp, b"<html></html>"),
        dns=DNSMeasurement("example.test", ["10.0.0.1", "10.0.0.2"]),
        endpoints=[
            HTTPEndpointMeasurement(
                "10.0.0.1:443", TCPConnectMeasurement(), TLSHandshakeMeasurement()
            ),
            HTTPEndpointMeasurement(
                "10.0.0.2:443", TCPConnectMeasurement("connection_refused")
            ),
        ],
    )


def test_render_text():
    out = render_text([_measurement()])
    assert out.splitlines() == [
        "# https://example.test/",
        "method: GET",
        "url: https://example.test/",
        'headers: {"Host": ["example.test"]}',
        'dns: {"domain": "example.test", "addresses": ["10.0.0.1", "10.0.0.2"]}',
        "## 10.0.0.1:443",
        'tcp: {"failure": null}',
        'tls: {"failure": null}',
        "## 10.0.0.2:443",
        'tcp: {"failure": "connection_refused"}',
    ]


def test_render_json():
    out = json.loads(render_json([_measurement()]))
    assert len(out) == 1
    m = out[0]
    assert m["url"] == "https://example.test/"
    assert m["round_trip"]["request"]["method"] == "GET"
    assert m["round_trip"]["response"]["status_code"] == 200
    assert m["round_trip"]["body_length"] == 13
    assert m["dns"]["addresses"] == ["10.0.0.1", "10.0.0.2"]
    assert m["endpoints"][1] == {
        "endpoint": "10.0.0.2:443",
        "tcp_connect": {"failure": "connection_refused"},
        "tls_handshake": None,
    }


def test_render_tabular():
    out = render_tabular([_measurement()], "plain")
    lines = out.splitlines()
    assert lines[0].split() == ["url", "endpoint", "tcp", "tls"]
    assert lines[1].split() == ["https://example.test/", "10.0.0.1:443", "ok", "ok"]
    assert lines[2].split() == ["https://example.test/", "10.0.0.2:443", "connection_refused"]


def test_render_dispatch():
    assert render([_measurement()]).startswith("# https://example.test/")
    assert render([_measurement()], "json").startswith("[")
    assert "10.0.0.1:443" in render([_measurement()], "grid")


def test_tabular_append_incompatible_columns():
    tab = Tabular.create([("a", 1)])
    tab.appendrow([("a", 2)])
    assert len(tab) == 2
    try:
        tab.append(Tabular.create([("b", 3)]))
    except TypeError:
        pass
    else:
        raise AssertionError("expected TypeError")
