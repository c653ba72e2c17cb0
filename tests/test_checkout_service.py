import pytest
from sqlalchemy.exc import OperationalError

from portal.core.exceptions import ProviderError, ProviderUnavailable, ValidationError
from portal.models.order import Order
from portal.services.checkout_service import DEFAULT_UNIT_AMOUNT_CENTS, CheckoutService
from portal.services.config_store import ProductData, SettingsPatch
from portal.services.order_service import OrderService
from portal.services.stripe_client import StripeCheckoutClient


class FakeCheckoutClient(StripeCheckoutClient):
    def __init__(self, secret_key="sk_test_123", error=None):
        super().__init__(secret_key)
        self.calls = []
        self.error = error

    def create_checkout_session(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return f"cs_test_{len(self.calls)}"


CATALOG = [
    ProductData(id="EX-01", title="Free drop", price_cents=0),
    ProductData(id="EX-02", title="Unpriced drop"),
    ProductData(id="EX-03", title="Priced drop", price_cents=4500),
]


def _service(store, client, order_service=None):
    return CheckoutService(
        store,
        client,
        success_url="http://shop/success.html",
        cancel_url="http://shop/success.html?canceled=true",
        order_service=order_service,
    )


@pytest.fixture
def catalog_store(store):
    store.write(SettingsPatch(products=CATALOG))
    return store


def test_explicit_zero_price_is_charged_as_zero(catalog_store):
    client = FakeCheckoutClient()
    session = _service(catalog_store, client).create_session("EX-01")

    assert session.unit_amount == 0
    assert client.calls[0]["unit_amount"] == 0
    assert client.calls[0]["name"] == "Free drop"


def test_missing_price_uses_default_amount(catalog_store):
    client = FakeCheckoutClient()
    session = _service(catalog_store, client).create_session("EX-02", 3)

    assert session.unit_amount == DEFAULT_UNIT_AMOUNT_CENTS == 2000
    assert client.calls[0]["quantity"] == 3


def test_stored_price_and_session_id_pass_through(catalog_store):
    client = FakeCheckoutClient()
    session = _service(catalog_store, client).create_session("EX-03")

    assert session.session_id == "cs_test_1"
    assert session.unit_amount == 4500
    assert client.calls[0]["currency"] == "usd"
    assert client.calls[0]["success_url"] == "http://shop/success.html?session_id={CHECKOUT_SESSION_ID}"
    assert client.calls[0]["cancel_url"] == "http://shop/success.html?canceled=true"


def test_unknown_product_falls_back_to_first_catalog_entry(catalog_store):
    client = FakeCheckoutClient()
    session = _service(catalog_store, client).create_session("EX-99")

    assert session.product_id == "EX-01"
    assert client.calls[0]["name"] == "Free drop"
    assert client.calls[0]["unit_amount"] == 0


@pytest.mark.parametrize("quantity, expected", [(None, 1), (0, 1), (5, 5)])
def test_quantity_defaults_to_one(catalog_store, quantity, expected):
    client = FakeCheckoutClient()
    assert _service(catalog_store, client).create_session("EX-03", quantity).quantity == expected


def test_negative_quantity_is_rejected(catalog_store):
    client = FakeCheckoutClient()
    with pytest.raises(ValidationError):
        _service(catalog_store, client).create_session("EX-03", -1)
    assert client.calls == []


def test_missing_product_id_is_a_validation_error(catalog_store):
    with pytest.raises(ValidationError) as exc:
        _service(catalog_store, FakeCheckoutClient()).create_session("")
    assert exc.value.status_code == 400
    assert exc.value.error_code == "missing_productId"


def test_unconfigured_provider_is_checked_first(catalog_store):
    with pytest.raises(ProviderUnavailable) as exc:
        _service(catalog_store, FakeCheckoutClient(secret_key="")).create_session(None)
    assert exc.value.status_code == 500


def test_empty_catalog_is_rejected(store):
    store.write(SettingsPatch(products=[]))
    with pytest.raises(ValidationError):
        _service(store, FakeCheckoutClient()).create_session("EX-01")


def test_provider_error_propagates(catalog_store):
    client = FakeCheckoutClient(error=ProviderError(details="card declined"))
    with pytest.raises(ProviderError):
        _service(catalog_store, client).create_session("EX-03")


def test_session_records_pending_order(sql_store, session_factory):
    sql_store.write(SettingsPatch(products=CATALOG))
    orders = OrderService(session_factory)
    session = _service(sql_store, FakeCheckoutClient(), orders).create_session("EX-99", 2)

    db = session_factory()
    try:
        order = db.get(Order, session.order_id)
    finally:
        db.close()
    assert order is not None
    assert order.product_id == "EX-01"
    assert order.quantity == 2
    assert order.external_session_id == session.session_id
    assert order.status == "pending"


def test_order_recording_failure_keeps_session(catalog_store):
    class BrokenOrders:
        def record_pending(self, product_id, quantity, external_session_id):
            raise OperationalError("INSERT", {}, Exception("database is locked"))

    session = _service(catalog_store, FakeCheckoutClient(), BrokenOrders()).create_session("EX-03")
    assert session.session_id == "cs_test_1"
    assert session.order_id is None
