"""
Comparison export rendering (CSV and PDF).

Both formats are rendered from the same ComparisonMatrix:
- CSV: one header row of column display names, then one row per service
- PDF: an HTML report (templates/comparison_report.html) with one row per
  attribute and one column per service, printed by headless Chromium

PDF rendering runs through an async backend callable (html -> bytes). The
default backend drives Playwright; tests inject their own.
"""
import asyncio
import csv
import io
import time
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional, Tuple

from fastapi.templating import Jinja2Templates
from playwright.async_api import async_playwright

from aws_catalog.config import settings
from aws_catalog.errors import CatalogError, PdfRenderError, PdfRenderTimeoutError, ValidationError
from aws_catalog.services.attribute_codec import to_text
from aws_catalog.services.comparison import ComparisonMatrix
from aws_catalog.utils.logging import get_logger

logger = get_logger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

REPORT_TEMPLATE = "comparison_report.html"
EMPTY_HTML_CELL = "-"

PdfBackend = Callable[[str], Awaitable[bytes]]


class ExportFormat(str, Enum):
    CSV = "csv"
    PDF = "pdf"

    @property
    def media_type(self) -> str:
        if self is ExportFormat.CSV:
            return "text/csv; charset=utf-8"
        return "application/pdf"


def parse_export_format(value: Any) -> ExportFormat:
    """
    Resolve the requested export format (case-insensitive).

    Raises:
        ValidationError: INVALID_FORMAT with the valid formats and the provided value
    """
    if isinstance(value, str):
        try:
            return ExportFormat(value.strip().lower())
        except ValueError:
            pass
    raise ValidationError(
        message="サポートされていないエクスポート形式です。",
        details={"validFormats": [f.value for f in ExportFormat], "provided": value},
        code="INVALID_FORMAT",
    )


def export_filename(export_format: ExportFormat, now_ms: Optional[int] = None) -> str:
    """Build the download filename, e.g. aws-services-comparison-1700000000000.csv"""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{settings.EXPORT_FILENAME_PREFIX}-{now_ms}.{export_format.value}"


def format_cell(value: Any) -> str:
    """Stringify a matrix cell for CSV output (None becomes an empty string)."""
    return to_text(value)


def render_csv(matrix: ComparisonMatrix) -> bytes:
    """
    Render the matrix as CSV.

    All fields are quoted, records end with "\\n" and the output is UTF-8
    without a byte order mark.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")

    writer.writerow([column.display_name for column in matrix.attributes])
    for row in matrix.services:
        writer.writerow([format_cell(matrix.cell(row, column)) for column in matrix.attributes])

    return buffer.getvalue().encode("utf-8")


def _html_rows(matrix: ComparisonMatrix) -> List[dict]:
    rows = []
    for column in matrix.attributes:
        values = []
        for service in matrix.services:
            value = matrix.cell(service, column)
            values.append(EMPTY_HTML_CELL if value is None else to_text(value))
        rows.append({"label": column.display_name, "cells": values})
    return rows


def render_comparison_html(matrix: ComparisonMatrix) -> str:
    """
    Render the printable HTML report for a matrix.

    The table is transposed relative to the CSV: attributes are rows and
    services are columns. Values are HTML-escaped by the template engine.
    """
    template = templates.get_template(REPORT_TEMPLATE)
    return template.render(
        generated_at=matrix.generated_at.strftime("%Y/%m/%d %H:%M:%S"),
        services=matrix.services,
        rows=_html_rows(matrix),
    )


async def playwright_html_to_pdf(html: str) -> bytes:
    """Print HTML to a landscape A4 PDF with headless Chromium."""
    async with async_playwright() as playwright:
        browser = await playwright.chromium.launch(
            headless=True,
            args=settings.PDF_BROWSER_ARGS.split(),
        )
        try:
            page = await browser.new_page()
            await page.set_content(html, wait_until="networkidle")
            return await page.pdf(
                format="A4",
                landscape=True,
                print_background=True,
                margin={"top": "20px", "right": "20px", "bottom": "20px", "left": "20px"},
            )
        finally:
            await browser.close()


async def render_pdf(
    matrix: ComparisonMatrix,
    backend: Optional[PdfBackend] = None,
    timeout: Optional[float] = None,
) -> bytes:
    """
    Render the matrix as a PDF document.

    Args:
        matrix: Comparison matrix to render
        backend: Async callable turning HTML into PDF bytes
            (defaults to playwright_html_to_pdf)
        timeout: Upper bound in seconds (defaults to settings.PDF_RENDER_TIMEOUT)

    Returns:
        The complete PDF bytes

    Raises:
        PdfRenderTimeoutError: Rendering did not finish within timeout
        PdfRenderError: The backend failed or produced no output
    """
    backend = backend or playwright_html_to_pdf
    if timeout is None:
        timeout = settings.PDF_RENDER_TIMEOUT

    try:
        html = render_comparison_html(matrix)
        pdf = await asyncio.wait_for(backend(html), timeout=timeout)
    except asyncio.TimeoutError:
        logger.error(f"PDF rendering timed out after {timeout}s")
        raise PdfRenderTimeoutError(details={"timeoutSeconds": timeout})
    except CatalogError:
        raise
    except Exception as e:
        logger.error(f"PDF rendering failed: {e}", exc_info=True)
        raise PdfRenderError(details={"reason": str(e)}) from e

    if not pdf:
        logger.error("PDF backend returned no data")
        raise PdfRenderError(details={"reason": "empty output"})
    return bytes(pdf)


async def render_export(
    matrix: ComparisonMatrix,
    export_format: ExportFormat,
    pdf_backend: Optional[PdfBackend] = None,
) -> Tuple[bytes, str]:
    """
    Render the matrix in the requested format.

    Returns:
        Tuple of (content bytes, media type)
    """
    if export_format is ExportFormat.PDF:
        content = await render_pdf(matrix, backend=pdf_backend)
    else:
        content = render_csv(matrix)

    logger.info(
        f"Rendered {export_format.value.upper()} export: "
        f"{matrix.service_count} services, {len(content)} bytes"
    )
    return content, export_format.media_type
