"""
Error taxonomy shared by the lookup adapter, analysis engine and service layer.

Components raise these; the service layer, the API server and the CLIs convert
them into typed outcomes, JSON error bodies or console messages.
"""

from __future__ import annotations

from typing import Optional


class AllergenAlertError(Exception):
    """Base class for every recoverable failure in the package."""


class ValidationError(AllergenAlertError):
    """Required input is missing (empty barcode, empty ingredients)."""


class NotFoundError(AllergenAlertError):
    """The barcode has no matching product upstream."""


class UpstreamError(AllergenAlertError):
    """
    The product database is unreachable or answered with an error.
    `status` keeps the upstream HTTP status when one was received.
    """

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class ReasoningBackendError(AllergenAlertError):
    """Transport-level failure talking to the reasoning backend."""


class AnalysisError(AllergenAlertError):
    """The analysis could not produce a trustworthy verdict."""


class PartialDataWarning(UserWarning):
    """
    Product was found but its ingredient list is missing.
    Carried as data on outcomes; analysis is skipped until ingredients exist.
    """

    def __init__(self, message: str, product_name: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.product_name = product_name
