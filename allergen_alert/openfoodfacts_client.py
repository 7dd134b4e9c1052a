"""
Data source implementation for OpenFoodFacts.
Fetches product JSON and normalizes name, ingredients, description and image
into a ProductRecord, preferring English-localized fields.
"""

from __future__ import annotations

import logging
from typing import Optional

import requests

from .errors import NotFoundError, UpstreamError, ValidationError
from .models import UNKNOWN_PRODUCT_NAME, ProductRecord

MISSING_INGREDIENTS_WARNING = (
    "Ingredients for this product could not be found in the database. "
    "Allergen analysis cannot be performed until they are provided."
)


class ProductDataSource:
    """
    Base interface for any product data source (API, cache, fixtures).
    """

    def lookup(self, barcode: str) -> ProductRecord:
        raise NotImplementedError


class OpenFoodFactsClient(ProductDataSource):
    """
    Thin wrapper around OpenFoodFacts public API to standardize product info.
    """

    BASE_URL = "https://world.openfoodfacts.org/api/v0/product/{barcode}.json"
    DEFAULT_USER_AGENT = "AllergenAlert/1.0 (python-requests) - OpenFoodFacts client"

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = 15.0,
        user_agent: Optional[str] = None,
    ):
        self.session = session or requests.Session()
        self.timeout = timeout
        self.user_agent = user_agent or self.DEFAULT_USER_AGENT
        self.log = logging.getLogger(self.__class__.__name__)

    def lookup(self, barcode: str) -> ProductRecord:
        barcode = (barcode or "").strip()
        if not barcode:
            raise ValidationError("Barcode query parameter is required")

        try:
            response = self.session.get(
                self.BASE_URL.format(barcode=barcode),
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            self.log.warning("OpenFoodFacts fetch failed for %s: %s", barcode, exc)
            raise UpstreamError(
                f"Failed to reach OpenFoodFacts: {exc}", status=None
            ) from exc

        if not response.ok:
            message = self._upstream_message(response) or (
                "Failed to fetch product data from OpenFoodFacts. "
                f"Status: {response.status_code}"
            )
            self.log.warning(
                "OpenFoodFacts error for %s: %s %s",
                barcode,
                response.status_code,
                response.reason,
            )
            if response.status_code == 404:
                raise NotFoundError(message)
            raise UpstreamError(message, status=response.status_code)

        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamError(
                "OpenFoodFacts returned a non-JSON body", status=response.status_code
            ) from exc

        product_data = data.get("product") if isinstance(data, dict) else None
        if not data or data.get("status") == 0 or not product_data:
            self.log.info("Product %s not found on OpenFoodFacts", barcode)
            raise NotFoundError(
                (data or {}).get("status_verbose")
                or f"Product with barcode {barcode} not found."
            )

        return self.normalize(barcode, product_data)

    def normalize(self, barcode: str, product_data: dict) -> ProductRecord:
        """
        Map an OpenFoodFacts product dict to a ProductRecord. Each field prefers
        its English variant and falls back independently.
        """
        product_name = _first_text(
            product_data, "product_name_en", "product_name"
        ) or UNKNOWN_PRODUCT_NAME
        ingredients = _first_text(
            product_data, "ingredients_text_en", "ingredients_text"
        ) or ""
        description = _first_text(product_data, "generic_name_en", "generic_name")
        image_url = _first_text(
            product_data, "image_url", "image_front_url", "image_small_url"
        )

        warning = None
        if not ingredients.strip():
            # Product exists, ingredients do not: partial success, not a failure.
            self.log.info("Product %s found without ingredients", barcode)
            warning = MISSING_INGREDIENTS_WARNING

        return ProductRecord(
            barcode=barcode,
            product_name=product_name,
            ingredients=ingredients,
            product_description=description,
            image_url=image_url,
            warning=warning,
            source="openfoodfacts",
        )

    @staticmethod
    def _upstream_message(response: requests.Response) -> Optional[str]:
        try:
            body = response.json()
        except ValueError:
            return None
        if isinstance(body, dict):
            return body.get("status_verbose")
        return None


def _first_text(payload: dict, *keys: str) -> Optional[str]:
    """Return the first non-empty string value among keys."""
    for key in keys:
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return None
