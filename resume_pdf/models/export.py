"""Export job models and print options."""

import re
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field, field_validator

if TYPE_CHECKING:
    from resume_pdf.config import Settings

# CSS pixels per unit, 96px to the inch
UNIT_TO_PIXELS: dict[str, float] = {
    "px": 1.0,
    "in": 96.0,
    "cm": 37.8,
    "mm": 3.78,
}

_LENGTH_RE = re.compile(r"^\s*(?P<value>\d+(?:\.\d+)?|\.\d+)\s*(?P<unit>[a-z]*)\s*$")

Length = float | str


def length_to_inches(length: Length) -> float:
    """
    Convert a print length to inches.

    Bare numbers are CSS pixels. Strings may carry a ``px``, ``in``,
    ``cm`` or ``mm`` suffix; a string without a suffix is pixels too.

    Raises:
        ValueError: If the length is negative or the unit is unknown
    """
    if isinstance(length, bool):
        raise ValueError(f"Invalid length: {length!r}")

    if isinstance(length, int | float):
        if length < 0:
            raise ValueError(f"Length must not be negative: {length}")
        return float(length) / 96.0

    match = _LENGTH_RE.match(length.lower())
    if match is None:
        raise ValueError(f"Invalid length: {length!r}")

    unit = match.group("unit") or "px"
    if unit not in UNIT_TO_PIXELS:
        raise ValueError(f"Unknown length unit {unit!r} in {length!r}")

    return float(match.group("value")) * UNIT_TO_PIXELS[unit] / 96.0


class ExportStage(str, Enum):
    """Pipeline stages, in execution order."""

    LAUNCH = "launch"
    CONNECT = "connect"
    NAVIGATE = "navigate"
    PRINT = "print"
    WRITE = "write"


class PrintMargin(BaseModel):
    """Margins around the printed content. Omitted sides are zero."""

    top: Length = 0
    left: Length = 0
    right: Length = 0
    bottom: Length = 0

    @field_validator("top", "left", "right", "bottom")
    @classmethod
    def _check_length(cls, value: Length) -> Length:
        length_to_inches(value)
        return value

    def to_inches(self) -> dict[str, float]:
        """Margins keyed by side, in inches."""
        return {
            "top": length_to_inches(self.top),
            "left": length_to_inches(self.left),
            "right": length_to_inches(self.right),
            "bottom": length_to_inches(self.bottom),
        }


def _default_margin() -> PrintMargin:
    return PrintMargin(top=0, left=10, right=10)


class PrintOptions(BaseModel):
    """Page layout options for print-to-PDF."""

    prefer_css_page_size: bool = Field(
        default=True, description="Let CSS @page size rules govern page dimensions"
    )
    print_background: bool = Field(
        default=True, description="Include background colours and images"
    )
    margin: PrintMargin = Field(default_factory=_default_margin)
    landscape: bool = False
    scale: float = Field(default=1.0, ge=0.1, le=2.0)
    paper_width: float = Field(default=8.5, gt=0, description="Fallback width in inches")
    paper_height: float = Field(default=11.0, gt=0, description="Fallback height in inches")

    def to_cdp_params(self) -> dict[str, Any]:
        """Translate into ``Page.printToPDF`` parameters."""
        margins = self.margin.to_inches()
        return {
            "landscape": self.landscape,
            "displayHeaderFooter": False,
            "printBackground": self.print_background,
            "scale": self.scale,
            "paperWidth": self.paper_width,
            "paperHeight": self.paper_height,
            "marginTop": margins["top"],
            "marginBottom": margins["bottom"],
            "marginLeft": margins["left"],
            "marginRight": margins["right"],
            "pageRanges": "",
            "preferCSSPageSize": self.prefer_css_page_size,
        }


class ExportJob(BaseModel):
    """A single résumé export run."""

    source_url: str
    output_path: Path
    print_options: PrintOptions = Field(default_factory=PrintOptions)

    @field_validator("source_url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"Source URL must be http(s): {value!r}")
        return value

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ExportJob":
        """Build the default job from application settings."""
        return cls(
            source_url=settings.source_url,
            output_path=Path(settings.output_path).resolve(),
        )


class ExportResult(BaseModel):
    """Outcome of a successful export."""

    source_url: str
    output_path: Path
    size_bytes: int
    started_at: datetime
    completed_at: datetime
    execution_time_ms: int
