"""Core module (v1.2)"""
from .exceptions import (
    PrintShopError,
    ValidationError,
    NoCustomerSelectedError,
    DuplicateSubmissionError,
    SerializationError,
    ConfigurationError,
    APIError,
    GeminiAPIError,
    SupabaseError,
    EstimationError,
    QuoteTimeoutError,
    ErrorCodes,
)
from .error_handler import ErrorHandler, RecoveryAction, error_handler
from .config import (
    CalculatorConfig,
    DEFAULT_CONFIG,
    PromoProduct,
    PROMO_PRODUCTS,
    COMPLEXITY_FACTORS,
    MATERIAL_FACTORS,
    VEHICLE_EXTRAS,
    AREA_CATEGORIES,
)
from .logging import setup_logger

__all__ = [
    # Exceptions
    "PrintShopError",
    "ValidationError",
    "NoCustomerSelectedError",
    "DuplicateSubmissionError",
    "SerializationError",
    "ConfigurationError",
    "APIError",
    "GeminiAPIError",
    "SupabaseError",
    "EstimationError",
    "QuoteTimeoutError",
    "ErrorCodes",
    "ErrorHandler",
    "RecoveryAction",
    "error_handler",
    # Constants
    "CalculatorConfig",
    "DEFAULT_CONFIG",
    "PromoProduct",
    "PROMO_PRODUCTS",
    "COMPLEXITY_FACTORS",
    "MATERIAL_FACTORS",
    "VEHICLE_EXTRAS",
    "AREA_CATEGORIES",
    "setup_logger",
]
