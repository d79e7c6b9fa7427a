"""QR code rendering with segno.

In ``sjis`` mode the text becomes a single Kanji-mode segment encoded through
Shift JIS. Every other request goes through segno's automatic mode selection
on the UTF-8 bytes of the text.
"""

import asyncio
import io
import re
from typing import Protocol

import segno

from core.logger import get_logger
from rendering.errors import RenderError
from schemas import OutputFormat, QrMode, QrSpec

logger = get_logger(__name__)

_ERROR_LEVELS = {
    "l": "L",
    "low": "L",
    "m": "M",
    "medium": "M",
    "q": "Q",
    "quartile": "Q",
    "h": "H",
    "high": "H",
}
DEFAULT_ERROR_LEVEL = "M"

_BARE_HEX_COLOR = re.compile(r"^(?:[0-9a-fA-F]{3,4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")


class QrRenderer(Protocol):
    async def render(self, spec: QrSpec) -> bytes: ...


def error_level(value: str | None) -> str:
    """Map ecLevel values ("L", "low", "Q", ...) onto segno's error levels."""
    if not value:
        return DEFAULT_ERROR_LEVEL
    try:
        return _ERROR_LEVELS[value.strip().lower()]
    except KeyError:
        raise RenderError(f"Unknown error correction level: {value}") from None


def normalize_color(value: str) -> str:
    """Accept bare hex colors ("000", "ff0000") alongside "#000" and names."""
    if _BARE_HEX_COLOR.match(value):
        return f"#{value}"
    return value


def build_qr(spec: QrSpec) -> segno.QRCode:
    """Encode ``spec.text`` into a QR symbol without rendering it."""
    error = error_level(spec.error_correction_level)
    if spec.mode is QrMode.SJIS:
        return segno.make_qr(spec.text, mode="kanji", error=error, boost_error=False)
    return segno.make_qr(spec.text, error=error, boost_error=False, encoding="utf-8")


def render_qr_bytes(spec: QrSpec) -> bytes:
    """Render ``spec`` to PNG or SVG bytes, about ``spec.size`` pixels wide."""
    try:
        qr = build_qr(spec)
        modules, _ = qr.symbol_size(scale=1, border=spec.margin)
        out = io.BytesIO()
        options = {
            "border": spec.margin,
            "dark": normalize_color(spec.dark_color),
            "light": normalize_color(spec.light_color),
        }
        if spec.format is OutputFormat.SVG:
            qr.save(out, kind="svg", scale=spec.size / modules, **options)
        else:
            qr.save(out, kind="png", scale=max(1, spec.size // modules), **options)
    except ValueError as e:
        raise RenderError(f"Could not generate QR\n{e}") from e
    return out.getvalue()


class SegnoQrRenderer:
    async def render(self, spec: QrSpec) -> bytes:
        logger.debug(
            "qr.render",
            format=spec.format.value,
            mode=spec.mode.value,
            size=spec.size,
            margin=spec.margin,
        )
        return await asyncio.to_thread(render_qr_bytes, spec)
