"""Tests for the shared request handlers"""
import json
from decimal import Decimal

import pytest

from gigpay.errors import ConfigurationError, GatewayProtocolError, ValidationError
from gigpay.handlers import (
    dumps,
    handle_confirm_order,
    handle_create_order,
    handle_verify_order,
    parse_body,
)
from gigpay.service import OrderService


def _get_service(gateway):
    service = OrderService(gateway, default_origin="https://gigs.test")
    return lambda: service


@pytest.mark.parametrize("raw", [None, b"", "   ", b"[1, 2]", "not json", b'"text"'])
def test_parse_body_rejects(raw):
    with pytest.raises(ValidationError):
        parse_body(raw)


def test_parse_body_keeps_decimals():
    assert parse_body(b'{"amount": 199.99}') == {"amount": Decimal("199.99")}


def test_dumps_decimal():
    assert json.loads(dumps({"a": Decimal("270"), "b": Decimal("9.50")})) == {"a": 270, "b": 9.5}


@pytest.mark.asyncio
async def test_create_order_with_decimal_body(fake_gateway):
    gateway = fake_gateway()
    body = b'{"subjectKind": "product", "subjectId": "prod-1", "buyerId": "u-1", "amount": 10.10}'

    response = await handle_create_order(body, _get_service(gateway))

    assert response.status_code == 200
    assert gateway.created[0]["order_amount"] == 10.1


@pytest.mark.asyncio
async def test_create_order_rejects_wrong_field_types(fake_gateway):
    gateway = fake_gateway()

    response = await handle_create_order({"subjectId": ["x"]}, _get_service(gateway))

    assert response.status_code == 400
    assert response.body["error"] == "Invalid request"
    assert response.body["details"][0]["field"] == "subjectId"


@pytest.mark.asyncio
async def test_create_order_rejects_unknown_kind(fake_gateway):
    body = {"subjectKind": "gift", "subjectId": "x", "buyerId": "u-1", "amount": 5}

    response = await handle_create_order(body, _get_service(fake_gateway()))

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_create_order_rejects_bad_order_id(fake_gateway):
    gateway = fake_gateway()
    body = {"subjectKind": "product", "subjectId": "x", "buyerId": "u-1", "amount": 5, "orderId": "../etc"}

    response = await handle_create_order(body, _get_service(gateway))

    assert response.status_code == 400
    assert response.body == {"error": "Invalid order_id"}
    assert gateway.created == []


@pytest.mark.asyncio
async def test_configuration_error_is_500():
    def get_service():
        raise ConfigurationError("Cashfree not configured. Set: CASHFREE_SECRET_KEY")

    response = await handle_verify_order("order_user_1", get_service)

    assert response.status_code == 500
    assert response.body == {"error": "Payment service not configured"}


def _unconfigured_service():
    raise ConfigurationError("Cashfree not configured. Set: CASHFREE_SECRET_KEY")


async def _no_reconciler():
    raise AssertionError("reconciler must not be reached")


@pytest.mark.asyncio
@pytest.mark.parametrize("order_id", [None, "", "   "])
async def test_verify_missing_order_id_is_400_without_credentials(order_id):
    response = await handle_verify_order(order_id, _unconfigured_service)

    assert response.status_code == 400
    assert response.body == {"error": "Missing order_id"}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"subjectKind": "product", "subjectId": "p", "buyerId": "u", "amount": 0},
        {"subjectKind": "gift", "subjectId": "p", "buyerId": "u", "amount": 10},
        {"buyerId": "u"},
        b"not json",
    ],
)
async def test_create_invalid_body_is_400_without_credentials(body):
    response = await handle_create_order(body, _unconfigured_service)

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_confirm_missing_order_id_is_400_without_credentials():
    response = await handle_confirm_order(b"{}", _unconfigured_service, _no_reconciler)

    assert response.status_code == 400
    assert response.body == {"error": "Missing order_id"}


@pytest.mark.asyncio
async def test_protocol_error_is_502(fake_gateway):
    gateway = fake_gateway(fetch_results=[GatewayProtocolError("Unexpected response from payment gateway")])

    response = await handle_verify_order("order_user_1", _get_service(gateway))

    assert response.status_code == 502
    assert response.headers == {}


@pytest.mark.asyncio
async def test_unexpected_error_is_500(fake_gateway, caplog):
    gateway = fake_gateway(fetch_results=[KeyError("boom")])

    response = await handle_verify_order("order_user_1", _get_service(gateway))

    assert response.status_code == 500
    assert response.body == {"error": "Internal server error"}
    assert "Unexpected error in verify order" in caplog.text


@pytest.mark.asyncio
async def test_confirm_requires_order_id(fake_gateway):
    async def get_reconciler():
        raise AssertionError("reconciler must not be reached")

    response = await handle_confirm_order(b"{}", _get_service(fake_gateway()), get_reconciler)

    assert response.status_code == 400
    assert response.body == {"error": "Missing order_id"}
