"""Request parameter extraction and normalization.

Turns raw query/body parameters into validated ChartSpec / QrSpec objects.

Malformed dimensions never fail a request: height, width, size and margin
silently fall back to their defaults. Only a missing chart/text or an
undecodable QR text is an error.
"""

import json
import re
from collections.abc import Mapping
from typing import Any
from urllib.parse import unquote

from schemas import (
    DEFAULT_BACKGROUND_COLOR,
    DEFAULT_CHART_HEIGHT,
    DEFAULT_CHART_WIDTH,
    DEFAULT_QR_DARK_COLOR,
    DEFAULT_QR_LIGHT_COLOR,
    DEFAULT_QR_MARGIN,
    DEFAULT_QR_SIZE,
    MAX_QR_SIZE,
    ChartSpec,
    OutputFormat,
    QrMode,
    QrSpec,
)

MISSING_CHART_MESSAGE = "You are missing variable `c` or `chart`"
MISSING_TEXT_MESSAGE = "You are missing variable `text`"
MALFORMED_URI_MESSAGE = "URI malformed"

_PERCENT_RUN = re.compile(r"(?:%[0-9A-Fa-f]{2})+")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class InvalidRenderRequestError(Exception):
    """Base class for requests rejected before rendering."""


class MissingParameterError(InvalidRenderRequestError):
    pass


class MalformedUriError(InvalidRenderRequestError):
    def __init__(self, message: str = MALFORMED_URI_MESSAGE) -> None:
        super().__init__(message)


def decode_uri_component(value: str) -> str:
    """Strict percent-decoding: stray ``%`` or invalid UTF-8 is an error.

    ``+`` is left alone rather than turned into a space.
    """
    if "%" not in value:
        return value

    parts: list[str] = []
    pos = 0
    for match in _PERCENT_RUN.finditer(value):
        literal = value[pos : match.start()]
        if "%" in literal:
            raise MalformedUriError()
        parts.append(literal)
        try:
            raw = bytes.fromhex(match.group().replace("%", ""))
            parts.append(raw.decode("utf-8"))
        except UnicodeDecodeError as e:
            raise MalformedUriError() from e
        pos = match.end()

    tail = value[pos:]
    if "%" in tail:
        raise MalformedUriError()
    parts.append(tail)
    return "".join(parts)


def _decode_query_part(value: str) -> str:
    try:
        return decode_uri_component(value)
    except MalformedUriError:
        return unquote(value)


def parse_query_string(query: str) -> dict[str, str]:
    """Parse a raw query string, keeping ``+`` literal. First value wins."""
    params: dict[str, str] = {}
    for pair in query.split("&"):
        if not pair:
            continue
        name, _, value = pair.partition("=")
        params.setdefault(_decode_query_part(name), _decode_query_part(value))
    return params


def parse_int(value: Any) -> int | None:
    """Leading-integer parse: "300px" -> 300, "abc" -> None."""
    if value is None or isinstance(value, bool):
        return None
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def _is_blank(value: Any) -> bool:
    # JSON bodies can carry false, 0 or null where a query string has ""
    if value is None or value is False or value == "":
        return True
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == 0 or value != value
    return False


def first_value(params: Mapping[str, Any], *names: str) -> Any:
    """First parameter among ``names`` that is present and not blank.

    Blank means missing, empty, ``False``, zero or NaN.
    """
    for name in names:
        value = params.get(name)
        if not _is_blank(value):
            return value
    return None


def _positive_or_default(value: Any, default: int) -> int:
    parsed = parse_int(value)
    if parsed is None or parsed <= 0:
        return default
    return parsed


def _as_text(value: Any) -> str:
    if isinstance(value, (dict, list, bool)):
        return json.dumps(value)
    return str(value)


def normalize_chart(params: Mapping[str, Any]) -> ChartSpec:
    chart = first_value(params, "c", "chart")
    if chart is None:
        raise MissingParameterError(MISSING_CHART_MESSAGE)

    background = first_value(params, "backgroundColor", "bkg")
    return ChartSpec(
        chart=_as_text(chart),
        width=_positive_or_default(
            first_value(params, "w", "width"), DEFAULT_CHART_WIDTH
        ),
        height=_positive_or_default(
            first_value(params, "h", "height"), DEFAULT_CHART_HEIGHT
        ),
        background_color=(
            _as_text(background)
            if background is not None
            else DEFAULT_BACKGROUND_COLOR
        ),
    )


def chart_output_format(params: Mapping[str, Any]) -> OutputFormat:
    """PDF when f/format says so (any case), PNG otherwise."""
    requested = first_value(params, "f", "format")
    if requested is not None and str(requested).lower() == "pdf":
        return OutputFormat.PDF
    return OutputFormat.PNG


def normalize_qr(params: Mapping[str, Any]) -> QrSpec:
    raw_text = first_value(params, "text")
    if raw_text is None:
        raise MissingParameterError(MISSING_TEXT_MESSAGE)

    text = decode_uri_component(str(raw_text))

    size = parse_int(params.get("size"))
    if size is None or not 0 < size <= MAX_QR_SIZE:
        size = DEFAULT_QR_SIZE

    margin = parse_int(params.get("margin"))
    if not margin or margin < 0:
        margin = DEFAULT_QR_MARGIN

    error_level = first_value(params, "ecLevel")
    return QrSpec(
        text=text,
        format=(
            OutputFormat.SVG if params.get("format") == "svg" else OutputFormat.PNG
        ),
        mode=QrMode.SJIS if params.get("mode") == "sjis" else QrMode.DEFAULT,
        margin=margin,
        size=size,
        error_correction_level=str(error_level) if error_level is not None else None,
        dark_color=str(first_value(params, "dark") or DEFAULT_QR_DARK_COLOR),
        light_color=str(first_value(params, "light") or DEFAULT_QR_LIGHT_COLOR),
    )
