"""
Error taxonomy for the search and comparison engine.

Every failure the engine reports to a caller is a CatalogError subclass
carrying a stable machine-readable code, the HTTP status it maps to, a
human-readable message and optional details. The FastAPI exception handler
in main.py turns these into the standard error body:

    {"error": {"code", "message", "details"?}, "timestamp", "path"}

Categories:
- ValidationError (400): malformed or missing input
- LimitExceededError (400): too many services for one comparison
- NotFoundError (404): a referenced entity does not exist
- ConflictError (409): uniqueness violation
- PdfRenderError / PdfRenderTimeoutError (500/504): headless rendering failed
"""
import math
from typing import Any, Optional


class CatalogError(Exception):
    """Base class for all errors surfaced through the API."""

    status_code: int = 500
    code: str = "INTERNAL_SERVER_ERROR"
    message: str = "サーバー内部エラーが発生しました。"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Any] = None,
        code: Optional[str] = None,
    ):
        if message is not None:
            self.message = message
        if code is not None:
            self.code = code
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Build the "error" member of the error response body."""
        error = {"code": self.code, "message": self.message}
        if self.details is not None:
            error["details"] = self.details
        return error

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(code='{self.code}', details={self.details!r})>"


class ValidationError(CatalogError):
    status_code = 400
    code = "VALIDATION_ERROR"
    message = "バリデーションエラーが発生しました。"


class LimitExceededError(ValidationError):
    code = "TOO_MANY_SERVICES"
    message = "比較できるサービスは最大5つまでです。"


class NotFoundError(CatalogError):
    status_code = 404
    code = "NOT_FOUND"
    message = "指定されたリソースが見つかりません。"


class ConflictError(CatalogError):
    status_code = 409
    code = "CONFLICT"
    message = "重複するデータが存在します。"


def json_safe(value: Any) -> Any:
    """Replace NaN and infinities (which JSON cannot carry) with their repr, recursively."""
    if isinstance(value, float) and not math.isfinite(value):
        return repr(value)
    if isinstance(value, list):
        return [json_safe(item) for item in value]
    if isinstance(value, dict):
        return {key: json_safe(item) for key, item in value.items()}
    return value


class InvalidValueFormatError(ValidationError):
    """Raised by the attribute codec when a raw value does not fit its data type."""

    code = "INVALID_VALUE_FORMAT"

    def __init__(self, data_type: str, value: Any):
        super().__init__(
            message=f"データ型 {data_type} に対して無効な値です。",
            details={"dataType": data_type, "value": json_safe(value)},
        )
        self.data_type = data_type
        self.value = value


class PdfRenderError(CatalogError):
    status_code = 500
    code = "PDF_RENDER_FAILED"
    message = "PDFの生成に失敗しました。"


class PdfRenderTimeoutError(PdfRenderError):
    status_code = 504
    code = "PDF_RENDER_TIMEOUT"
    message = "PDFの生成がタイムアウトしました。"
