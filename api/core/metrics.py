"""Custom metrics for the render gateway.

Counters are created via ``opentelemetry.metrics.get_meter()`` which resolves
against whatever global ``MeterProvider`` the deployment installs. Without one
the OTel API hands back no-op instruments.

Usage::

    from core.metrics import RENDER_FAILED_COUNTER

    RENDER_FAILED_COUNTER.add(1, {"kind": "chart", "format": "pdf"})
"""

from __future__ import annotations

from opentelemetry import metrics

_meter = metrics.get_meter("render_gateway")

# ── Rate limiting ─────────────────────────────────────────────────────

RATE_LIMIT_REJECTED_COUNTER = _meter.create_counter(
    name="ratelimit.rejected",
    description="Chart requests rejected because the client's window was exhausted",
    unit="{request}",
)

# ── Rendering ─────────────────────────────────────────────────────────

RENDER_COMPLETED_COUNTER = _meter.create_counter(
    name="render.completed",
    description="Charts and QR codes rendered successfully",
    unit="{render}",
)

RENDER_FAILED_COUNTER = _meter.create_counter(
    name="render.failed",
    description="Requests answered with an error image or PDF",
    unit="{render}",
)
