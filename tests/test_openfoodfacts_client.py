from dataclasses import fields
from unittest.mock import MagicMock

import pytest
import requests

from allergen_alert.errors import NotFoundError, UpstreamError, ValidationError
from allergen_alert.openfoodfacts_client import (
    MISSING_INGREDIENTS_WARNING,
    OpenFoodFactsClient,
)


def _response(status_code=200, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 400
    response.reason = "OK" if response.ok else "Error"
    if payload is None:
        response.json.side_effect = ValueError("no json")
    else:
        response.json.return_value = payload
    return response


def _client(response=None, side_effect=None):
    session = MagicMock()
    if side_effect is not None:
        session.get.side_effect = side_effect
    else:
        session.get.return_value = response
    return OpenFoodFactsClient(session=session, timeout=3.0), session


class TestLookup:
    @pytest.mark.parametrize("barcode", ["", "   ", None])
    def test_empty_barcode_never_reaches_network(self, barcode):
        client, session = _client(_response(payload={}))
        with pytest.raises(ValidationError):
            client.lookup(barcode)
        session.get.assert_not_called()

    def test_prefers_english_fields(self):
        payload = {
            "status": 1,
            "product": {
                "product_name": "Galletas",
                "product_name_en": "Biscuits",
                "ingredients_text": "harina de trigo, azúcar",
                "ingredients_text_en": "wheat flour, sugar",
                "generic_name": "Galletas dulces",
                "generic_name_en": "Sweet biscuits",
                "image_front_url": "https://img.example/front.jpg",
                "image_small_url": "https://img.example/small.jpg",
            },
        }
        client, session = _client(_response(payload=payload))
        product = client.lookup("8410000000000")

        assert product.barcode == "8410000000000"
        assert product.product_name == "Biscuits"
        assert product.ingredients == "wheat flour, sugar"
        assert product.product_description == "Sweet biscuits"
        assert product.image_url == "https://img.example/front.jpg"
        assert product.warning is None

        url = session.get.call_args[0][0]
        assert url.endswith("/api/v0/product/8410000000000.json")
        kwargs = session.get.call_args[1]
        assert kwargs["timeout"] == 3.0
        assert "User-Agent" in kwargs["headers"]

    def test_fields_fall_back_independently(self):
        payload = {
            "status": 1,
            "product": {
                "product_name": "Galletas",
                "ingredients_text_en": "wheat flour",
                "generic_name": "Galletas dulces",
            },
        }
        client, _ = _client(_response(payload=payload))
        product = client.lookup("123")
        assert product.product_name == "Galletas"
        assert product.ingredients == "wheat flour"
        assert product.product_description == "Galletas dulces"
        assert product.image_url is None

    def test_missing_name_uses_placeholder(self):
        payload = {"status": 1, "product": {"ingredients_text": "salt"}}
        client, _ = _client(_response(payload=payload))
        assert client.lookup("123").product_name == "Unknown Product"

    def test_missing_ingredients_is_partial_success(self):
        payload = {"status": 1, "product": {"product_name": "Oat Crackers"}}
        client, _ = _client(_response(payload=payload))
        product = client.lookup("123")
        assert product.product_name == "Oat Crackers"
        assert product.ingredients == ""
        assert not product.has_ingredients
        assert product.warning == MISSING_INGREDIENTS_WARNING
        assert product.to_dict()["warning"] == MISSING_INGREDIENTS_WARNING

    def test_status_zero_is_not_found(self):
        payload = {"status": 0, "status_verbose": "product not found"}
        client, _ = _client(_response(payload=payload))
        with pytest.raises(NotFoundError, match="product not found"):
            client.lookup("000")

    def test_http_404_is_not_found(self):
        client, _ = _client(_response(404))
        with pytest.raises(NotFoundError):
            client.lookup("000")

    def test_server_error_keeps_status(self):
        client, _ = _client(_response(503, payload={"status_verbose": "maintenance"}))
        with pytest.raises(UpstreamError) as excinfo:
            client.lookup("123")
        assert excinfo.value.status == 503
        assert "maintenance" in str(excinfo.value)

    def test_unreachable_upstream(self):
        client, _ = _client(side_effect=requests.ConnectionError("down"))
        with pytest.raises(UpstreamError) as excinfo:
            client.lookup("123")
        assert excinfo.value.status is None

    def test_timeout_is_upstream_error(self):
        client, _ = _client(side_effect=requests.Timeout("slow"))
        with pytest.raises(UpstreamError):
            client.lookup("123")

    def test_non_json_body(self):
        client, _ = _client(_response(200))
        with pytest.raises(UpstreamError):
            client.lookup("123")


def test_wire_shape_omits_absent_optionals():
    client = OpenFoodFactsClient(session=MagicMock())
    product = client.normalize("1", {"product_name": "Tea", "ingredients_text": "tea"})
    assert product.to_dict() == {"productName": "Tea", "ingredients": "tea"}


def test_normalized_record_keeps_no_upstream_payload():
    client = OpenFoodFactsClient(session=MagicMock())
    product = client.normalize(
        "1", {"product_name": "Tea", "ingredients_text": "tea", "nutriments": {"energy": 1}}
    )
    assert {f.name for f in fields(product)} == {
        "barcode",
        "product_name",
        "ingredients",
        "product_description",
        "image_url",
        "warning",
        "source",
    }
