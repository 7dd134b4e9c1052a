"""
Barcode-to-verdict orchestration.

Every failure raised by the lookup adapter or the analysis engine is caught
here and returned as a typed outcome, so callers (API, CLI) only branch on
`status`. Analyses are guarded so only one runs at a time, and results that
finish after cancel() are flagged as discarded instead of becoming current.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from .analysis_engine import AllergenAnalysisEngine
from .config import Settings
from .errors import (
    AnalysisError,
    NotFoundError,
    PartialDataWarning,
    UpstreamError,
    ValidationError,
)
from .models import UNKNOWN_PRODUCT_NAME, AnalysisInput, AnalysisResult, ProductRecord
from .openfoodfacts_client import (
    MISSING_INGREDIENTS_WARNING,
    OpenFoodFactsClient,
    ProductDataSource,
)
from .profile_store import JsonFileProfileBackend, ProfileStore
from .reasoning import OpenAIReasoningBackend

EMPTY_PROFILE_NOTICE = (
    "Your allergen profile is empty. Analysis will check for common allergens "
    "but may not be personalized."
)


class OutcomeStatus(str, Enum):
    OK = "ok"
    PARTIAL_DATA = "partial_data"
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    UPSTREAM_ERROR = "upstream_error"
    ANALYSIS_ERROR = "analysis_error"
    BUSY = "busy"


@dataclass
class CheckOutcome:
    """
    Result of a lookup and/or analysis. `product` is set whenever a product was
    found; `result` only when the analysis ran and succeeded.
    """

    status: OutcomeStatus
    product: Optional[ProductRecord] = None
    result: Optional[AnalysisResult] = None
    error: Optional[str] = None
    upstream_status: Optional[int] = None
    warning: Optional[PartialDataWarning] = None
    notices: List[str] = field(default_factory=list)
    discarded: bool = False

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.OK

    def to_dict(self) -> Dict:
        return {
            "status": self.status.value,
            "product": self.product.to_dict() if self.product else None,
            "result": self.result.to_dict() if self.result else None,
            "error": self.error,
            "upstreamStatus": self.upstream_status,
            "warning": self.warning.message if self.warning else None,
            "notices": list(self.notices),
        }


class AllergenCheckService:
    def __init__(
        self,
        product_source: ProductDataSource,
        engine: AllergenAnalysisEngine,
        profile_store: ProfileStore,
    ):
        self.product_source = product_source
        self.engine = engine
        self.profile_store = profile_store
        self.last_outcome: Optional[CheckOutcome] = None
        self._in_flight = threading.Lock()
        self._generation = 0
        self._generation_lock = threading.Lock()
        self.log = logging.getLogger(self.__class__.__name__)

    def cancel(self) -> None:
        """Invalidate any request in flight; its result will be discarded."""
        with self._generation_lock:
            self._generation += 1

    def _token(self) -> int:
        with self._generation_lock:
            return self._generation

    def _is_current(self, token: int) -> bool:
        with self._generation_lock:
            return token == self._generation

    def lookup(self, barcode: str) -> CheckOutcome:
        """Fetch a product and classify the result, including partial data."""
        try:
            product = self.product_source.lookup(barcode)
        except ValidationError as exc:
            return CheckOutcome(OutcomeStatus.INVALID_INPUT, error=str(exc))
        except NotFoundError as exc:
            return CheckOutcome(OutcomeStatus.NOT_FOUND, error=str(exc))
        except UpstreamError as exc:
            return CheckOutcome(
                OutcomeStatus.UPSTREAM_ERROR, error=str(exc), upstream_status=exc.status
            )

        if not product.has_ingredients:
            warning = PartialDataWarning(
                product.warning or MISSING_INGREDIENTS_WARNING,
                product_name=product.product_name,
            )
            return CheckOutcome(OutcomeStatus.PARTIAL_DATA, product=product, warning=warning)
        return CheckOutcome(OutcomeStatus.OK, product=product)

    def analyze(
        self, analysis_input: AnalysisInput, product: Optional[ProductRecord] = None
    ) -> CheckOutcome:
        """
        Run one analysis. Returns BUSY immediately if another one is running.
        """
        if not self._in_flight.acquire(blocking=False):
            return CheckOutcome(
                OutcomeStatus.BUSY,
                product=product,
                error="An analysis is already in progress",
            )
        token = self._token()
        try:
            outcome = self._run_analysis(analysis_input, product)
        finally:
            self._in_flight.release()

        if not self._is_current(token):
            self.log.info(
                "Discarding late analysis result for %s",
                analysis_input.barcode or analysis_input.product_name,
            )
            outcome.discarded = True
            return outcome
        self.last_outcome = outcome
        return outcome

    def _run_analysis(
        self, analysis_input: AnalysisInput, product: Optional[ProductRecord]
    ) -> CheckOutcome:
        notices: List[str] = []
        if not analysis_input.allergens_profile.strip():
            notices.append(EMPTY_PROFILE_NOTICE)
        try:
            result = self.engine.analyze(analysis_input)
        except ValidationError as exc:
            return CheckOutcome(
                OutcomeStatus.INVALID_INPUT, product=product, error=str(exc), notices=notices
            )
        except AnalysisError as exc:
            self.log.error("Allergen analysis failed: %s", exc)
            return CheckOutcome(
                OutcomeStatus.ANALYSIS_ERROR, product=product, error=str(exc), notices=notices
            )
        return CheckOutcome(OutcomeStatus.OK, product=product, result=result, notices=notices)

    def check_barcode(self, barcode: str) -> CheckOutcome:
        """Lookup then analyze against the stored profile."""
        token = self._token()
        lookup = self.lookup(barcode)
        if not lookup.ok:
            if self._is_current(token):
                self.last_outcome = lookup
            else:
                lookup.discarded = True
            return lookup
        if not self._is_current(token):
            lookup.discarded = True
            return lookup

        analysis_input = AnalysisInput.from_product(
            lookup.product, self.profile_store.serialize()
        )
        return self.analyze(analysis_input, product=lookup.product)

    def check_manual(
        self,
        product_name: str,
        ingredients: str,
        product_description: Optional[str] = None,
    ) -> CheckOutcome:
        """Analyze hand-entered product details against the stored profile."""
        if not (ingredients or "").strip():
            return CheckOutcome(
                OutcomeStatus.INVALID_INPUT,
                error="Ingredients are required for allergen analysis",
            )
        product = ProductRecord(
            barcode="manual-entry",
            product_name=(product_name or "").strip() or UNKNOWN_PRODUCT_NAME,
            ingredients=ingredients,
            product_description=product_description or None,
            source="manual",
        )
        analysis_input = AnalysisInput.from_product(
            product, self.profile_store.serialize()
        )
        analysis_input.barcode = None
        return self.analyze(analysis_input, product=product)


def build_service(
    settings: Settings, profile_store: Optional[ProfileStore] = None
) -> AllergenCheckService:
    """Wire the default OpenFoodFacts + OpenAI + JSON-file stack from settings."""
    client = OpenFoodFactsClient(
        timeout=settings.lookup_timeout, user_agent=settings.user_agent
    )
    backend = OpenAIReasoningBackend(
        model=settings.model,
        temperature=settings.temperature,
        timeout=settings.analysis_timeout,
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
    )
    engine = AllergenAnalysisEngine(
        backend,
        max_tool_rounds=settings.max_tool_rounds,
        ground_results=settings.ground_results,
    )
    if profile_store is None:
        profile_store = ProfileStore(JsonFileProfileBackend(settings.profile_path))
    return AllergenCheckService(client, engine, profile_store)
