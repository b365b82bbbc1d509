"""AI collaborator module"""
from .gemini_analyzer import (
    GeminiClient,
    VehiclePanelEstimator,
    MockVehiclePanelEstimator,
    PriceSuggester,
    MockPriceSuggester,
    PriceSuggestion,
    SalesPitchGenerator,
    MockSalesPitchGenerator,
    FALLBACK_MEASUREMENTS,
    infer_vehicle_class,
    fallback_measurements,
    create_estimator,
)

__all__ = [
    "GeminiClient",
    "VehiclePanelEstimator",
    "MockVehiclePanelEstimator",
    "PriceSuggester",
    "MockPriceSuggester",
    "PriceSuggestion",
    "SalesPitchGenerator",
    "MockSalesPitchGenerator",
    "FALLBACK_MEASUREMENTS",
    "infer_vehicle_class",
    "fallback_measurements",
    "create_estimator",
]
