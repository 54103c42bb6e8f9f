from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest

from receipts import Item, Receipt, ReceiptNotFoundError, ReceiptStore, parse_receipt
from scoring import InvalidReceiptError


@pytest.fixture
def payload():
    return {
        "retailer": "Walgreens",
        "purchaseDate": "2022-01-02",
        "purchaseTime": "08:13",
        "total": "2.65",
        "items": [
            {"shortDescription": "Pepsi - 12-oz", "price": "1.25"},
            {"shortDescription": "Dasani", "price": "1.40"}
        ]
    }


def test_parse_receipt(payload):
    receipt = parse_receipt(payload)
    assert receipt == Receipt(retailer="Walgreens", purchase_date="2022-01-02", purchase_time="08:13",
                              items=(Item("Pepsi - 12-oz", Decimal("1.25")), Item("Dasani", Decimal("1.40"))),
                              total=Decimal("2.65"))


def test_parse_receipt_empty_items(payload):
    payload["items"] = []
    assert parse_receipt(payload).items == ()


@pytest.mark.parametrize("total", ["test", "", "NaN", "Infinity"])
def test_parse_receipt_invalid_total(payload, total):
    payload["total"] = total
    with pytest.raises(ValueError, match=r"Error: invalid receipt total"):
        parse_receipt(payload)


def test_parse_receipt_missing_attribute(payload):
    del payload["purchaseTime"]
    with pytest.raises(ValueError, match="Error: missing purchaseTime in receipt"):
        parse_receipt(payload)


def test_parse_receipt_item_missing_price(payload):
    del payload["items"][1]["price"]
    with pytest.raises(ValueError, match="Error: invalid receipt item format"):
        parse_receipt(payload)


def test_parse_receipt_not_an_object():
    with pytest.raises(ValueError, match="Error: receipt must be a JSON object"):
        parse_receipt(None)


def test_store_submit_and_get(payload):
    store = ReceiptStore()
    receipt = parse_receipt(payload)
    receipt_id = store.submit(receipt)
    assert store.get(receipt_id) is receipt
    assert len(store) == 1
    assert store.snapshot() == [(receipt_id, receipt)]


def test_store_rejects_invalid_receipt(payload):
    store = ReceiptStore()
    payload["total"] = "3.00"
    with pytest.raises(InvalidReceiptError) as e:
        store.submit(parse_receipt(payload))
    assert e.value.problems == ["Total does not match sum of items. Total from items: 2.65 Total from receipt: 3.00"]
    assert len(store) == 0


def test_store_get_unknown_id():
    with pytest.raises(ReceiptNotFoundError) as e:
        ReceiptStore().get("test")
    assert str(e.value) == "ERROR: receipt id not found (test)"


def test_store_concurrent_submits(payload):
    store = ReceiptStore()
    receipt = parse_receipt(payload)
    with ThreadPoolExecutor(max_workers=50) as pool:
        receipt_ids = list(pool.map(lambda _: store.submit(receipt), range(1000)))
    assert len(set(receipt_ids)) == 1000
    assert len(store) == 1000


@pytest.mark.parametrize("amount", ["1E+30", "1000000000000000.00", "-1E+15"])
def test_parse_receipt_rejects_huge_total(payload, amount):
    payload["total"] = amount
    with pytest.raises(ValueError, match=r"Error: invalid receipt total"):
        parse_receipt(payload)


def test_parse_receipt_rejects_huge_price(payload):
    payload["items"][0]["price"] = "1E+30"
    with pytest.raises(ValueError, match=r"Error: invalid item price \(1E\+30\)"):
        parse_receipt(payload)


def test_parse_receipt_accepts_large_amount(payload):
    payload["total"] = "999999999999999.99"
    assert parse_receipt(payload).total == Decimal("999999999999999.99")
