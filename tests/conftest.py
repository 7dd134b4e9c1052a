"""Shared fixtures for the allergen alert tests."""

import pytest

from allergen_alert import (
    AllergenAnalysisEngine,
    AllergenCheckService,
    InMemoryProfileBackend,
    ProductRecord,
    ProfileStore,
)

from fakes import ScriptedBackend, StaticSource


@pytest.fixture
def backend():
    return ScriptedBackend()


@pytest.fixture
def engine(backend):
    return AllergenAnalysisEngine(backend)


@pytest.fixture
def profile():
    return ProfileStore(InMemoryProfileBackend())


@pytest.fixture
def source():
    return StaticSource(
        {
            "5000000000001": ProductRecord(
                barcode="5000000000001",
                product_name="Protein Shake",
                ingredients="Water, Whey Powder, Sugar, Peanut Oil",
            ),
            "5000000000002": ProductRecord(
                barcode="5000000000002",
                product_name="Oat Crackers",
                ingredients="",
                warning="Ingredients missing",
            ),
        }
    )


@pytest.fixture
def service(source, engine, profile):
    return AllergenCheckService(source, engine, profile)
