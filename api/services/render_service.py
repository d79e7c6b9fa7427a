"""Rendering dispatch for the chart and QR endpoints.

Each request is normalized, rendered and answered in the format the client
asked for. Failures never produce a JSON or HTML error body: image requests get
an image with the error text, PDF requests get a one-page PDF. Validation
failures are answered with HTTP 500 like render failures.

Rate limiting happens before this module is reached (chart routes only).
"""

from collections.abc import Mapping
from typing import Any

from fastapi import Response

from core.logger import get_logger
from core.metrics import RENDER_COMPLETED_COUNTER, RENDER_FAILED_COUNTER
from rendering import (
    ChartRenderer,
    QrRenderer,
    RenderError,
    error_png,
    pdf_from_image,
    pdf_from_text,
)
from schemas import ChartSpec, OutputFormat, OutputKind, RenderRequest
from services.normalize_service import (
    InvalidRenderRequestError,
    MalformedUriError,
    chart_output_format,
    normalize_chart,
    normalize_qr,
)

logger = get_logger(__name__)

# 1 week
CACHE_CONTROL = "public, max-age=604800"

ERROR_IMAGE_PREFIX = "Chart Error: "


def image_response(content: bytes, output_format: OutputFormat) -> Response:
    """200 response with the one-week public cache header."""
    return Response(
        content=content,
        media_type=output_format.media_type,
        headers={"Cache-Control": CACHE_CONTROL},
    )


async def failure_response(
    kind: OutputKind, output_format: OutputFormat, message: str
) -> Response:
    """500 response carrying ``message`` as a PDF page or an image."""
    RENDER_FAILED_COUNTER.add(1, {"kind": kind.value, "format": output_format.value})

    try:
        if output_format is OutputFormat.PDF:
            content = await pdf_from_text(message)
            media_type = OutputFormat.PDF.media_type
        else:
            content = await error_png(f"{ERROR_IMAGE_PREFIX}{message}")
            media_type = OutputFormat.PNG.media_type
    except Exception:
        logger.exception(
            "render.fallback_failed",
            kind=kind.value,
            format=output_format.value,
            message=message,
        )
        raise

    return Response(content=content, status_code=500, media_type=media_type)


async def _render_chart_output(
    spec: ChartSpec, output_format: OutputFormat, renderer: ChartRenderer
) -> bytes:
    png = await renderer.render(spec)
    if output_format is OutputFormat.PDF:
        return await pdf_from_image(png)
    return png


async def render_chart(
    params: Mapping[str, Any], renderer: ChartRenderer
) -> Response:
    """Normalize chart params, render, and answer as PNG or PDF."""
    output_format = chart_output_format(params)

    try:
        spec = normalize_chart(params)
    except InvalidRenderRequestError as e:
        logger.info("chart.request.invalid", error=str(e), format=output_format.value)
        return await failure_response(OutputKind.CHART, output_format, str(e))

    request = RenderRequest(kind=OutputKind.CHART, format=output_format, payload=spec)
    try:
        content = await _render_chart_output(spec, request.format, renderer)
    except RenderError as e:
        logger.error("chart.render.failed", error=str(e), format=output_format.value)
        return await failure_response(OutputKind.CHART, output_format, str(e))
    except Exception as e:
        logger.exception("chart.render.crashed", format=output_format.value)
        return await failure_response(OutputKind.CHART, output_format, str(e))

    RENDER_COMPLETED_COUNTER.add(1, {"kind": "chart", "format": output_format.value})
    return image_response(content, output_format)


async def render_qr(params: Mapping[str, Any], renderer: QrRenderer) -> Response:
    """Normalize QR params, render, and answer as PNG or SVG.

    Every QR failure is answered with a PNG error image.
    """
    try:
        spec = normalize_qr(params)
    except MalformedUriError as e:
        logger.error("request.uri_malformed", param="text")
        return await failure_response(OutputKind.QR, OutputFormat.PNG, str(e))
    except InvalidRenderRequestError as e:
        return await failure_response(OutputKind.QR, OutputFormat.PNG, str(e))

    request = RenderRequest(kind=OutputKind.QR, format=spec.format, payload=spec)
    try:
        content = await renderer.render(spec)
    except RenderError as e:
        logger.error("qr.render.failed", error=str(e), format=spec.format.value)
        return await failure_response(OutputKind.QR, OutputFormat.PNG, str(e))
    except Exception as e:
        logger.exception("qr.render.crashed", format=spec.format.value)
        return await failure_response(OutputKind.QR, OutputFormat.PNG, str(e))

    RENDER_COMPLETED_COUNTER.add(1, {"kind": "qr", "format": request.format.value})
    return image_response(content, request.format)

