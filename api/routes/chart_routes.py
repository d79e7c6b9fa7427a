"""Chart rendering endpoints.

Both routes sit behind the per-client rate limiter. Parameters come from the
query string (GET) or from a JSON / URL-encoded body (POST).
"""

from typing import Any

from fastapi import APIRouter, Depends, Request, Response

from core.logger import get_logger
from core.ratelimit import enforce_chart_rate_limit
from services.normalize_service import parse_query_string
from services.render_service import render_chart

logger = get_logger(__name__)

router = APIRouter(
    tags=["charts"],
    dependencies=[Depends(enforce_chart_rate_limit)],
)

_CHART_RESPONSES: dict[int | str, dict[str, Any]] = {
    200: {
        "content": {"image/png": {}, "application/pdf": {}},
        "description": "Rendered chart",
    },
    429: {"description": "Rate limit exceeded"},
    500: {
        "content": {"image/png": {}, "application/pdf": {}},
        "description": "Error message rendered as an image or PDF",
    },
}


async def read_body_params(request: Request) -> dict[str, Any]:
    """Body parameters from a JSON or URL-encoded form body.

    Unparsable or unsupported bodies yield no parameters, which the
    pipeline reports as a missing chart.
    """
    content_type = request.headers.get("content-type", "").lower()

    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            logger.warning("chart.body.invalid_json")
            return {}
        return body if isinstance(body, dict) else {}

    if content_type.startswith("application/x-www-form-urlencoded"):
        form = await request.form()
        return {key: form.getlist(key)[0] for key in form.keys()}

    return {}


@router.get("/chart", responses=_CHART_RESPONSES, response_class=Response)
async def chart_get(request: Request) -> Response:
    """Render a chart described by the query string."""
    params = parse_query_string(request.url.query)
    return await render_chart(params, request.app.state.chart_renderer)


@router.post("/chart", responses=_CHART_RESPONSES, response_class=Response)
async def chart_post(request: Request) -> Response:
    """Render a chart described by the request body."""
    params = await read_body_params(request)
    return await render_chart(params, request.app.state.chart_renderer)
