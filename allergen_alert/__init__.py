"""
Allergen alert package: look up a product by barcode, analyze its ingredient
text against a user's allergen profile, and report the verdict.

Expose the main classes so consumers can import directly from the package.
"""

from .models import (
    AllergenCategory,
    AnalysisInput,
    AnalysisResult,
    HighlightedAllergen,
    ProductRecord,
)
from .errors import (
    AllergenAlertError,
    AnalysisError,
    NotFoundError,
    PartialDataWarning,
    ReasoningBackendError,
    UpstreamError,
    ValidationError,
)
from .allergens import (
    COMMON_ALLERGENS,
    UNKNOWN_CATEGORY,
    allergen_label,
    lookup_category_by_free_text,
    resolve_allergen_id,
)
from .openfoodfacts_client import OpenFoodFactsClient, ProductDataSource
from .profile_store import (
    InMemoryProfileBackend,
    JsonFileProfileBackend,
    ProfileStore,
)
from .reasoning import OpenAIReasoningBackend, ReasoningBackend
from .analysis_engine import AllergenAnalysisEngine
from .report import highlight_matches, highlight_matches_by_taxonomy, render_text_report
from .service import AllergenCheckService, CheckOutcome, OutcomeStatus

__all__ = [
    "AllergenAlertError",
    "AllergenAnalysisEngine",
    "AllergenCategory",
    "AllergenCheckService",
    "AnalysisError",
    "AnalysisInput",
    "AnalysisResult",
    "CheckOutcome",
    "COMMON_ALLERGENS",
    "HighlightedAllergen",
    "InMemoryProfileBackend",
    "JsonFileProfileBackend",
    "NotFoundError",
    "OpenAIReasoningBackend",
    "OpenFoodFactsClient",
    "OutcomeStatus",
    "PartialDataWarning",
    "ProductDataSource",
    "ProductRecord",
    "ProfileStore",
    "ReasoningBackend",
    "ReasoningBackendError",
    "UNKNOWN_CATEGORY",
    "UpstreamError",
    "ValidationError",
    "allergen_label",
    "highlight_matches",
    "highlight_matches_by_taxonomy",
    "lookup_category_by_free_text",
    "render_text_report",
    "resolve_allergen_id",
]
