"""PDF and error-image generation.

Everything here builds a small SVG document and converts it with CairoSVG:
- ``pdf_from_image``: one-page PDF with a rendered chart PNG fitted to the page
- ``pdf_from_text``: one-page PDF carrying an error message
- ``error_png``: a white image with the error message, for image requests

Conversion is CPU bound and runs in a worker thread.
"""

import asyncio
import base64
import html
import re
import textwrap

# US Letter in PDF points
PAGE_WIDTH = 612
PAGE_HEIGHT = 792
PAGE_MARGIN = 72

PDF_FONT_SIZE = 12
PDF_LINE_HEIGHT = 16
PDF_WRAP_COLUMNS = 80

ERROR_FONT_SIZE = 24
ERROR_PADDING = 10
# Rough advance width of a sans-serif glyph relative to the font size
_GLYPH_WIDTH_RATIO = 0.62

_XML_INVALID_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")


def _load_cairosvg():
    try:
        import cairosvg
    except OSError as e:
        if "cairo" in str(e).lower():
            raise RuntimeError(
                "PDF and PNG generation requires the Cairo library. "
                "On macOS: brew install cairo. "
                "On Ubuntu/Debian: apt-get install libcairo2-dev. "
                "On Alpine: apk add cairo-dev."
            ) from e
        raise
    return cairosvg


def svg_to_pdf(svg_content: str) -> bytes:
    """Convert SVG string to PDF bytes using CairoSVG.

    Raises:
        RuntimeError: If cairo library is not installed on the system
    """
    cairosvg = _load_cairosvg()
    return cairosvg.svg2pdf(bytestring=svg_content.encode("utf-8"))


def svg_to_png(svg_content: str) -> bytes:
    """Convert SVG string to PNG bytes using CairoSVG.

    Raises:
        RuntimeError: If cairo library is not installed on the system
    """
    cairosvg = _load_cairosvg()
    return cairosvg.svg2png(bytestring=svg_content.encode("utf-8"))


def _escape(text: str) -> str:
    return html.escape(_XML_INVALID_CHARS.sub("", text), quote=False)


def _text_lines(message: str) -> list[str]:
    return message.replace("\r\n", "\n").split("\n")


def _tspans(lines: list[str], x: int, line_height: int) -> str:
    """One tspan per line, each dropping ``line_height`` below the last."""
    return "".join(
        f'<tspan x="{x}" dy="{line_height if i else 0}">{_escape(line)}</tspan>'
        for i, line in enumerate(lines)
    )


def image_page_svg(png: bytes) -> str:
    """A page with the PNG scaled to fit inside the margins, top aligned."""
    encoded = base64.b64encode(png).decode("ascii")
    width = PAGE_WIDTH - 2 * PAGE_MARGIN
    height = PAGE_HEIGHT - 2 * PAGE_MARGIN
    return f"""<svg xmlns="http://www.w3.org/2000/svg" xmlns:xlink="http://www.w3.org/1999/xlink" width="{PAGE_WIDTH}pt" height="{PAGE_HEIGHT}pt" viewBox="0 0 {PAGE_WIDTH} {PAGE_HEIGHT}">
  <rect width="100%" height="100%" fill="#ffffff"/>
  <image x="{PAGE_MARGIN}" y="{PAGE_MARGIN}" width="{width}" height="{height}" preserveAspectRatio="xMidYMin meet" xlink:href="data:image/png;base64,{encoded}"/>
</svg>"""


def text_page_svg(message: str) -> str:
    """A page with ``message`` typeset from the top-left margin."""
    lines: list[str] = []
    for line in _text_lines(message):
        lines.extend(textwrap.wrap(line, PDF_WRAP_COLUMNS) or [""])

    max_lines = (PAGE_HEIGHT - 2 * PAGE_MARGIN) // PDF_LINE_HEIGHT
    text = _tspans(lines[:max_lines], PAGE_MARGIN, PDF_LINE_HEIGHT)
    return f"""<svg xmlns="http://www.w3.org/2000/svg" width="{PAGE_WIDTH}pt" height="{PAGE_HEIGHT}pt" viewBox="0 0 {PAGE_WIDTH} {PAGE_HEIGHT}">
  <rect width="100%" height="100%" fill="#ffffff"/>
  <text x="{PAGE_MARGIN}" y="{PAGE_MARGIN + PDF_FONT_SIZE}" font-family="Helvetica, Arial, sans-serif" font-size="{PDF_FONT_SIZE}" fill="#000000">{text}</text>
</svg>"""


def error_image_svg(message: str) -> str:
    """White canvas sized to fit ``message`` with a small padding."""
    lines = _text_lines(message)
    line_height = round(ERROR_FONT_SIZE * 1.25)
    longest = max((len(line) for line in lines), default=0)
    text_width = round(longest * ERROR_FONT_SIZE * _GLYPH_WIDTH_RATIO)
    width = 2 * ERROR_PADDING + max(1, text_width)
    height = 2 * ERROR_PADDING + line_height * len(lines)

    text = _tspans(lines, ERROR_PADDING, line_height)
    return f"""<svg xmlns="http://www.w3.org/2000/svg" width="{width}" height="{height}" viewBox="0 0 {width} {height}">
  <rect width="100%" height="100%" fill="#ffffff"/>
  <text x="{ERROR_PADDING}" y="{ERROR_PADDING + ERROR_FONT_SIZE}" font-family="sans-serif" font-size="{ERROR_FONT_SIZE}" fill="#000000" xml:space="preserve">{text}</text>
</svg>"""


async def pdf_from_image(png: bytes) -> bytes:
    return await asyncio.to_thread(svg_to_pdf, image_page_svg(png))


async def pdf_from_text(message: str) -> bytes:
    return await asyncio.to_thread(svg_to_pdf, text_page_svg(message))


async def error_png(message: str) -> bytes:
    return await asyncio.to_thread(svg_to_png, error_image_svg(message))
