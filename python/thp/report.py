"""
Renders the measurements produced by the generate step.
"""

from __future__ import annotations
from enum import Enum
import json
from typing import (
    Any,
    Dict,
    List,
)

from .explore import HTTPRequest, HTTPResponse, RoundTrip
from .generate import URLMeasurement
from .model import HTTPHeader, SimpleURL
from .tabulatex import Tabular


def _json_marshal_type_expander(value: Any) -> Any:
    """Recursive worker function for the json_marshal function."""
    if value is None:
        return None
    if isinstance(value, (str, int, float)):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        out = {}
        for k, v in value.items():
            if not isinstance(k, str):
                raise ValueError("keys must be strings")
            out[k] = _json_marshal_type_expander(v)
        return out
    if isinstance(value, list):
        return [_json_marshal_type_expander(entry) for entry in value]
    if isinstance(value, HTTPHeader):
        return _json_marshal_type_expander(value.headers)
    if isinstance(value, SimpleURL):
        return value.tostring()
    #
    # Requests and responses point to each other, so we only
    # serialize the fields that are not references.
    #
    if isinstance(value, HTTPRequest):
        return _json_marshal_type_expander(
            {"method": value.method, "url": value.url, "headers": value.headers}
        )
    if isinstance(value, HTTPResponse):
        return _json_marshal_type_expander(
            {
                "status_code": value.status_code,
                "reason": value.reason,
                "headers": value.headers,
            }
        )
    if isinstance(value, RoundTrip):
        return _json_marshal_type_expander(
            {
                "request": value.request,
                "response": value.response,
                "body_length": len(value.body),
            }
        )
    if hasattr(value, "__dict__"):
        return _json_marshal_type_expander(value.__dict__)
    raise ValueError(f"_json_marshal_type_expander: cannot expand: {value}")


def json_marshal(value: Any) -> str:
    """Custom JSON marshaller."""
    return json.dumps(_json_marshal_type_expander(value), indent=2)


def _compact(value: Any) -> str:
    """Single line JSON representation of value."""
    return json.dumps(_json_marshal_type_expander(value))


def render_text(measurements: List[URLMeasurement]) -> str:
    """Renders the measurements as plain text, one block per URL."""
    lines: List[str] = []
    for m in measurements:
        req = m.round_trip.request
        lines.append(f"# {m.url}")
        lines.append(f"method: {req.method}")
        lines.append(f"url: {req.url.tostring()}")
        lines.append(f"headers: {_compact(req.headers)}")
        lines.append(f"dns: {_compact(m.dns)}")
        for e in m.endpoints:
            lines.append(f"## {e.endpoint}")
            lines.append(f"tcp: {_compact(e.tcp_connect)}")
            if e.tls_handshake is not None:
                lines.append(f"tls: {_compact(e.tls_handshake)}")
    return "\n".join(lines)


def render_json(measurements: List[URLMeasurement]) -> str:
    """Renders the measurements as a JSON list."""
    return json_marshal(measurements)


def render_tabular(measurements: List[URLMeasurement], format: str) -> str:
    """Renders one row per endpoint using the given tabulate format."""
    tab = Tabular()
    for m in measurements:
        tab.append(m.as_tabular())
    return tab.tabulatex(format)


def render(measurements: List[URLMeasurement], format: str = "text") -> str:
    """Renders the measurements using the given format."""
    renderers: Dict[str, Any] = {
        "text": render_text,
        "json": render_json,
    }
    renderer = renderers.get(format)
    if renderer is not None:
        return renderer(measurements)
    return render_tabular(measurements, format)
