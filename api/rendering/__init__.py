"""Renderer adapters.

- Chart rendering through the external chart service
- QR code rendering (PNG/SVG)
- PDF conversion and error images

The dispatch pipeline in services.render_service only talks to these
through the ChartRenderer / QrRenderer protocols and the document helpers.
"""

from rendering.charts import ChartRenderer, HttpChartRenderer
from rendering.documents import error_png, pdf_from_image, pdf_from_text
from rendering.errors import RenderError
from rendering.qr import QrRenderer, SegnoQrRenderer

__all__ = [
    "ChartRenderer",
    "HttpChartRenderer",
    "QrRenderer",
    "RenderError",
    "SegnoQrRenderer",
    "error_png",
    "pdf_from_image",
    "pdf_from_text",
]
