"""
FastAPI wrapper for the allergen alert engine.

Endpoints:
- GET    /health                 : readiness check
- GET    /api/barcode?barcode=   : normalized OpenFoodFacts product lookup
- POST   /api/analyze            : allergen verdict for product details
- POST   /api/report             : highlight detected allergens against a profile
- GET    /api/allergens          : selectable allergen categories
- GET    /api/profile            : stored profile
- PUT    /api/profile/{id}       : add a category to the profile
- DELETE /api/profile/{id}       : remove a category from the profile

Errors are returned as {"error": "..."} with the matching status code.

Run locally:
    uvicorn api_server:app --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

from typing import Dict, List, Optional

import uvicorn
from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from allergen_alert import (
    COMMON_ALLERGENS,
    AllergenCheckService,
    AnalysisInput,
    OutcomeStatus,
    resolve_allergen_id,
)
from allergen_alert.config import Settings, configure_logging
from allergen_alert.report import MATCHING_MODES, highlight
from allergen_alert.service import build_service


class AnalyzeRequest(BaseModel):
    product_name: str = Field(..., alias="productName", description="Product name")
    ingredients: str = Field(..., description="Ingredient text as printed on the label")
    product_description: Optional[str] = Field(None, alias="productDescription")
    allergens_profile: Optional[str] = Field(
        None,
        alias="allergensProfile",
        description="Comma-separated allergen ids or names. Defaults to the stored profile.",
    )
    barcode: Optional[str] = Field(None, description="Traceability only")


class ReportRequest(BaseModel):
    allergens_list: List[str] = Field(..., alias="allergensList")
    profile: Optional[List[str]] = Field(
        None, description="Profile ids. Defaults to the stored profile."
    )
    matching: str = Field("name", description="'name' (first-word) or 'taxonomy'")

    @field_validator("matching")
    @classmethod
    def _known_matching(cls, v: str) -> str:
        if v not in MATCHING_MODES:
            raise ValueError(f"matching must be one of {', '.join(MATCHING_MODES)}")
        return v


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


_LOOKUP_STATUS = {
    OutcomeStatus.INVALID_INPUT: 400,
    OutcomeStatus.NOT_FOUND: 404,
}


def create_app(service: AllergenCheckService) -> FastAPI:
    app = FastAPI(
        title="Allergen Alert API",
        description="Barcode lookup (OpenFoodFacts) and LLM-backed allergen analysis.",
        version="1.0.0",
    )

    # CORS for broad consumption; tighten in production by setting allowed origins.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.service = service

    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/barcode")
    def barcode_lookup(barcode: Optional[str] = Query(None)):
        if not barcode or not barcode.strip():
            return _error(400, "Barcode query parameter is required")
        outcome = service.lookup(barcode)
        if outcome.status in _LOOKUP_STATUS:
            return _error(_LOOKUP_STATUS[outcome.status], outcome.error or "")
        if outcome.status == OutcomeStatus.UPSTREAM_ERROR:
            return _error(outcome.upstream_status or 502, outcome.error or "Upstream error")
        # OK and PARTIAL_DATA both return the product; warning marks the latter.
        return outcome.product.to_dict()

    @app.post("/api/analyze")
    def analyze(request: AnalyzeRequest):
        profile_text = request.allergens_profile
        if profile_text is None:
            profile_text = service.profile_store.serialize()
        analysis_input = AnalysisInput(
            product_name=request.product_name,
            ingredients=request.ingredients,
            allergens_profile=profile_text,
            product_description=request.product_description,
            barcode=request.barcode,
        )
        outcome = service.analyze(analysis_input)
        if outcome.status == OutcomeStatus.INVALID_INPUT:
            return _error(400, outcome.error or "Invalid input")
        if outcome.status == OutcomeStatus.BUSY:
            return _error(429, outcome.error or "Analysis in progress")
        if outcome.status != OutcomeStatus.OK:
            return _error(502, outcome.error or "Allergen analysis failed")
        return outcome.result.to_dict()

    @app.post("/api/report")
    def report(request: ReportRequest):
        profile = request.profile
        if profile is None:
            profile = service.profile_store.list()
        items = highlight(request.allergens_list, profile, matching=request.matching)
        return {"allergens": [item.to_dict() for item in items]}

    @app.get("/api/allergens")
    def allergens():
        return [{"id": c.id, "name": c.name} for c in COMMON_ALLERGENS]

    def _profile_payload() -> Dict:
        store = service.profile_store
        return {"allergens": store.list(), "serialized": store.serialize()}

    @app.get("/api/profile")
    def get_profile():
        return _profile_payload()

    @app.put("/api/profile/{allergen}")
    def add_profile_allergen(allergen: str):
        allergen_id = resolve_allergen_id(allergen)
        if not allergen_id:
            return _error(400, f"Unknown allergen '{allergen}'")
        service.profile_store.add(allergen_id)
        return _profile_payload()

    @app.delete("/api/profile/{allergen}")
    def remove_profile_allergen(allergen: str):
        allergen_id = resolve_allergen_id(allergen) or allergen
        service.profile_store.remove(allergen_id)
        return _profile_payload()

    return app


settings = Settings.from_env()
configure_logging(settings.log_level)
app = create_app(build_service(settings))


if __name__ == "__main__":
    uvicorn.run("api_server:app", host="0.0.0.0", port=8000, reload=False)
