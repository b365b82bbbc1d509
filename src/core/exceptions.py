"""
Custom exceptions

Every error the quoting engine raises across its boundaries.
Calculators never raise for degenerate inputs; these are for input gating,
the finalize() boundary and external collaborators.

Subclasses declare `detail_fields`: keyword arguments that become both an
attribute and an entry of `details` (what gets logged).
"""

from typing import Optional, Dict, Any, Tuple


class ErrorCodes:
    """Error code constants"""

    # General
    UNKNOWN = "PSQ_UNKNOWN"
    VALIDATION = "PSQ_VALIDATION"
    CONFIG = "PSQ_CONFIG"

    # Quote
    NO_CUSTOMER_SELECTED = "PSQ_NO_CUSTOMER_SELECTED"
    DUPLICATE_SUBMISSION = "PSQ_DUPLICATE_SUBMISSION"
    SERIALIZATION = "PSQ_SERIALIZATION"
    TIMEOUT = "PSQ_TIMEOUT"

    # External
    API_ERROR = "PSQ_API"
    GEMINI_API_ERROR = "PSQ_GEMINI"
    SUPABASE_ERROR = "PSQ_SUPABASE"
    ESTIMATION_FAILED = "PSQ_ESTIMATION"


class PrintShopError(Exception):
    """Base exception"""

    code: str = ErrorCodes.UNKNOWN
    detail_fields: Tuple[str, ...] = ()

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        **fields
    ):
        """
        Args:
            message: error message
            error_code: overrides the class code
            details: extra fields for logs
            cause: underlying exception
            **fields: values for the class detail_fields
        """
        unknown = set(fields) - set(self.detail_fields)
        if unknown:
            raise TypeError(f"{type(self).__name__} got unexpected fields: {sorted(unknown)}")

        self.message = message
        self.error_code = error_code or self.code
        self.cause = cause
        self.details = dict(details or {})
        for name in self.detail_fields:
            value = fields.get(name)
            setattr(self, name, value)
            self.details[name] = value
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for logs and API responses"""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "type": type(self).__name__,
        }

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


# --- Input gating / finalize boundary ---

class ValidationError(PrintShopError):
    """Input that must block the triggering action"""

    code = ErrorCodes.VALIDATION
    detail_fields = ("field", "value")

    def __init__(self, message: str, **kwargs):
        super().__init__(message, **kwargs)
        # Logged value is truncated; the attribute keeps the original
        self.details["value"] = str(self.value)[:100]


class NoCustomerSelectedError(ValidationError):
    """finalize() called without a customer"""

    code = ErrorCodes.NO_CUSTOMER_SELECTED

    def __init__(self, message: str = "Select a customer before saving the quote.", **kwargs):
        super().__init__(message, field="customer_id", value=None, **kwargs)


class DuplicateSubmissionError(PrintShopError):
    """finalize() called while a save is already in flight"""

    code = ErrorCodes.DUPLICATE_SUBMISSION


class SerializationError(PrintShopError):
    """Non plain-data value found in an item snapshot"""

    code = ErrorCodes.SERIALIZATION
    detail_fields = ("item_index", "path")


class QuoteTimeoutError(PrintShopError):
    """Persistence did not answer within the save timeout"""

    code = ErrorCodes.TIMEOUT
    detail_fields = ("timeout_seconds",)


class ConfigurationError(PrintShopError):
    """Missing or invalid configuration"""

    code = ErrorCodes.CONFIG
    detail_fields = ("config_key",)


# --- External collaborators ---

class APIError(PrintShopError):
    """External API failure (base)"""

    code = ErrorCodes.API_ERROR
    detail_fields = ("status_code", "endpoint")


class GeminiAPIError(APIError):
    """Gemini API failure"""

    code = ErrorCodes.GEMINI_API_ERROR
    detail_fields = APIError.detail_fields + ("model",)


class SupabaseError(APIError):
    """Supabase failure"""

    code = ErrorCodes.SUPABASE_ERROR
    detail_fields = APIError.detail_fields + ("table", "operation")


class EstimationError(PrintShopError):
    """Vehicle measurements could not be estimated"""

    code = ErrorCodes.ESTIMATION_FAILED
    detail_fields = ("vehicle",)
