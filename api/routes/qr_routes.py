"""QR code endpoint. Not rate limited."""

from fastapi import APIRouter, Request, Response

from services.normalize_service import parse_query_string
from services.render_service import render_qr

router = APIRouter(tags=["qr"])


@router.get(
    "/qr",
    response_class=Response,
    responses={
        200: {
            "content": {"image/png": {}, "image/svg+xml": {}},
            "description": "Rendered QR code",
        },
        500: {
            "content": {"image/png": {}},
            "description": "Error message rendered as an image",
        },
    },
)
async def qr_get(request: Request) -> Response:
    """Render a QR code for ``text``."""
    params = parse_query_string(request.url.query)
    return await render_qr(params, request.app.state.qr_renderer)
