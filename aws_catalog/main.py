"""
AWS Service Catalog - Main FastAPI Application

Search ranking and attribute comparison/export API.

Database:
    Tables are created on startup from the ORM models (init_db) and the
    default categories and comparison attributes are seeded if missing.
    Schema migration is not handled by this application.

Logging:
    Configured when the aws_catalog package is imported (see
    aws_catalog.utils.logging). Domain errors log at WARNING, failures at ERROR.

Errors:
    Every error response has the body
        {"error": {"code", "message", "details"?}, "timestamp", "path"}
"""
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Mapping, Optional, Sequence

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session

from aws_catalog.config import settings
from aws_catalog.database import (
    SessionLocal,
    ensure_default_attributes,
    ensure_default_categories,
    get_db,
    init_db,
)
from aws_catalog.errors import CatalogError, ValidationError
from aws_catalog.schemas import (
    AttributeCreate,
    AttributeValueSet,
    CategoryReorder,
    CompareRequest,
    ExportRequest,
)
from aws_catalog.services import attributes as attribute_store
from aws_catalog.services import categories as category_service
from aws_catalog.services.comparison import build_comparison
from aws_catalog.services.export import (
    PdfBackend,
    export_filename,
    parse_export_format,
    playwright_html_to_pdf,
    render_export,
)
from aws_catalog.services.search import search_catalog
from aws_catalog.services.suggestions import DEFAULT_SYNONYMS
from aws_catalog.utils.logging import get_logger

logger = get_logger(__name__)


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def seed_defaults() -> None:
    """Create the default categories and comparison attributes if missing."""
    db = SessionLocal()
    try:
        categories = ensure_default_categories(db)
        attributes = ensure_default_attributes(db)
        logger.info(
            f"Seeded {len(categories)} categories and {len(attributes)} default attributes"
        )
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler for startup and shutdown events.

    Startup:
        - Creates missing tables
        - Seeds default categories and comparison attributes

    Shutdown:
        - Currently no cleanup required
    """
    init_db()
    seed_defaults()
    yield


app = FastAPI(
    title=settings.APP_NAME,
    description="AWS service search ranking and comparison/export API",
    version="0.1.0",
    lifespan=lifespan,
)


# =============================================================================
# Dependencies
# =============================================================================


def get_synonym_table() -> Mapping[str, Sequence[str]]:
    """Synonym table used for alternative search terms."""
    return DEFAULT_SYNONYMS


def get_pdf_backend() -> PdfBackend:
    """HTML to PDF renderer used by the export endpoint."""
    return playwright_html_to_pdf


# =============================================================================
# Error Handlers
# =============================================================================


def error_response(request: Request, status_code: int, error: dict) -> JSONResponse:
    body = {"error": error, "timestamp": utc_timestamp(), "path": request.url.path}
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc!r}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected: {exc!r}")
    return error_response(request, exc.status_code, exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]
    logger.warning(f"{request.method} {request.url.path} invalid request: {errors}")
    error = ValidationError(message="リクエストの形式が正しくありません。", details={"errors": errors})
    return error_response(request, error.status_code, error.to_dict())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"{request.method} {request.url.path} crashed: {exc}", exc_info=exc)
    return error_response(request, 500, CatalogError().to_dict())


# =============================================================================
# Routes
# =============================================================================


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "timestamp": utc_timestamp()}


@app.get("/search")
async def search(
    q: Optional[str] = None,
    category: Optional[str] = None,
    sort: Optional[str] = None,
    db: Session = Depends(get_db),
    synonyms: Mapping[str, Sequence[str]] = Depends(get_synonym_table),
):
    """
    Full-text search over service names, descriptions and memos.

    Query Parameters:
        q: Search text (required, trimmed)
        category: Optional category ID filter
        sort: relevance (default), name, alphabetical, updated or created

    Zero results add a suggestions block with popular services and
    alternative search terms.
    """
    result = search_catalog(db, q, category_id=category, sort=sort, synonyms=synonyms)
    result["timestamp"] = utc_timestamp()
    return result


@app.get("/comparison/attributes")
async def get_comparison_attributes(db: Session = Depends(get_db)):
    """List all comparison attributes, default attributes first."""
    data = attribute_store.list_attributes(db)
    return {"data": data, "count": len(data), "timestamp": utc_timestamp()}


@app.post("/comparison/attributes", status_code=201)
async def create_comparison_attribute(body: AttributeCreate, db: Session = Depends(get_db)):
    """Create a custom comparison attribute."""
    attribute = attribute_store.create_attribute(
        db, name=body.name, data_type=body.data_type, description=body.description
    )
    return {
        "data": attribute_store.attribute_to_dict(attribute),
        "message": "比較属性を作成しました。",
        "timestamp": utc_timestamp(),
    }


@app.post("/comparison/services/{service_id}/attributes/{attribute_id}")
async def set_service_attribute_value(
    service_id: str,
    attribute_id: str,
    body: AttributeValueSet,
    db: Session = Depends(get_db),
):
    """Set (create or overwrite) one attribute value of one service."""
    if not body.has_value:
        raise ValidationError(
            message="必須フィールドが不足しています。",
            details={"missingFields": ["value"]},
        )
    data = attribute_store.set_attribute_value(db, service_id, attribute_id, body.value)
    return {"data": data, "message": "属性値を更新しました。", "timestamp": utc_timestamp()}


@app.post("/comparison/compare")
async def compare_services(body: CompareRequest, db: Session = Depends(get_db)):
    """Build the comparison matrix for up to five services."""
    matrix = build_comparison(db, body.service_ids, body.attribute_ids)
    return {"data": matrix.to_dict(), "timestamp": utc_timestamp()}


@app.post("/comparison/export")
async def export_comparison(
    body: ExportRequest,
    db: Session = Depends(get_db),
    pdf_backend: PdfBackend = Depends(get_pdf_backend),
):
    """
    Export the comparison matrix as a CSV or PDF download.

    The format is checked (case-insensitively) before the comparison is built.
    """
    export_format = parse_export_format(body.format)

    matrix = build_comparison(db, body.service_ids, body.attribute_ids)
    content, media_type = await render_export(matrix, export_format, pdf_backend=pdf_backend)

    filename = export_filename(export_format, int(time.time() * 1000))
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/categories")
async def get_categories(db: Session = Depends(get_db)):
    """List categories in display order with their service counts."""
    data = category_service.list_categories(db)
    return {"data": data, "count": len(data), "timestamp": utc_timestamp()}


@app.put("/categories/reorder")
async def reorder_categories(body: CategoryReorder, db: Session = Depends(get_db)):
    """Apply a new category display order."""
    data = category_service.reorder_categories(db, body.category_orders)
    return {"data": data, "message": "カテゴリの並び順を更新しました。", "timestamp": utc_timestamp()}


@app.delete("/categories/{category_id}")
async def delete_category(category_id: str, db: Session = Depends(get_db)):
    """Delete a category that has no services."""
    category_service.delete_category(db, category_id)
    return {"message": "カテゴリを削除しました。", "timestamp": utc_timestamp()}
