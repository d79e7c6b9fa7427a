"""Pydantic schemas for render requests and API responses."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_CHART_WIDTH = 500
DEFAULT_CHART_HEIGHT = 300
DEFAULT_BACKGROUND_COLOR = "transparent"

DEFAULT_QR_MARGIN = 4
DEFAULT_QR_SIZE = 150
MAX_QR_SIZE = 3000
DEFAULT_QR_DARK_COLOR = "000"
DEFAULT_QR_LIGHT_COLOR = "fff"


class OutputKind(StrEnum):
    CHART = "chart"
    QR = "qr"


class OutputFormat(StrEnum):
    PNG = "png"
    SVG = "svg"
    PDF = "pdf"

    @property
    def media_type(self) -> str:
        if self is OutputFormat.PDF:
            return "application/pdf"
        if self is OutputFormat.SVG:
            return "image/svg+xml"
        return "image/png"


class QrMode(StrEnum):
    DEFAULT = "default"
    SJIS = "sjis"


class ChartSpec(BaseModel):
    """Validated chart parameters handed to the chart renderer.

    ``chart`` is the caller's chart definition, untrusted and opaque here.
    """

    model_config = ConfigDict(frozen=True)

    chart: str = Field(min_length=1)
    width: int = Field(default=DEFAULT_CHART_WIDTH, gt=0)
    height: int = Field(default=DEFAULT_CHART_HEIGHT, gt=0)
    background_color: str = DEFAULT_BACKGROUND_COLOR


class QrSpec(BaseModel):
    """Validated QR parameters handed to the QR renderer."""

    model_config = ConfigDict(frozen=True)

    text: str
    format: OutputFormat = OutputFormat.PNG
    mode: QrMode = QrMode.DEFAULT
    margin: int = Field(default=DEFAULT_QR_MARGIN, ge=0)
    size: int = Field(default=DEFAULT_QR_SIZE, gt=0, le=MAX_QR_SIZE)
    error_correction_level: str | None = None
    dark_color: str = DEFAULT_QR_DARK_COLOR
    light_color: str = DEFAULT_QR_LIGHT_COLOR


class RenderRequest(BaseModel):
    """One normalized request travelling through the dispatch pipeline."""

    model_config = ConfigDict(frozen=True)

    kind: OutputKind
    format: OutputFormat
    payload: ChartSpec | QrSpec


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str
