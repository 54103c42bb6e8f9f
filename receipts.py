import logging
import threading
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Tuple
from uuid import uuid4

from scoring import InvalidReceiptError, validate

logger = logging.getLogger(__name__)

required_receipt_attributes = ["retailer", "purchaseDate", "purchaseTime", "items", "total"]
required_item_attributes = ["shortDescription", "price"]
MAX_AMOUNT_DIGITS = 15


@dataclass(frozen=True)
class Item:
    short_description: str
    price: Decimal


@dataclass(frozen=True)
class Receipt:
    retailer: str
    purchase_date: str
    purchase_time: str
    items: Tuple[Item, ...]
    total: Decimal


class ReceiptNotFoundError(LookupError):
    def __init__(self, receipt_id: str):
        super().__init__(f"ERROR: receipt id not found ({receipt_id})")
        self.receipt_id = receipt_id


def parse_amount(value: str, attribute: str) -> Decimal:
    """ Parses a currency amount given as a decimal string """
    try:
        amount = Decimal(value)
    except InvalidOperation:
        raise ValueError(f"Error: invalid {attribute} ({value})")
    if not amount.is_finite() or amount.adjusted() >= MAX_AMOUNT_DIGITS:
        raise ValueError(f"Error: invalid {attribute} ({value})")
    return amount


def validate_receipt_json_structure(payload: dict):
    """ Validates structure of the json input """
    if not isinstance(payload, dict):
        raise ValueError("Error: receipt must be a JSON object")
    for attribute in required_receipt_attributes:
        if attribute not in payload:  # check if attribute is missing
            raise ValueError(f"Error: missing {attribute} in receipt")
        if attribute != "items" and not isinstance(payload[attribute], str):  # check attribute type
            raise ValueError(f"Error: invalid {attribute} format")

    if not isinstance(payload["items"], list):
        raise ValueError("Error: invalid receipt items list format")
    for item in payload["items"]:
        if not isinstance(item, dict):
            raise ValueError("Error: invalid receipt item format")
        for attribute in required_item_attributes:
            if not isinstance(item.get(attribute), str):
                raise ValueError("Error: invalid receipt item format")


def parse_receipt(payload: dict) -> Receipt:
    """
    Turns a decoded JSON receipt into a Receipt. Only the structure is checked
    here; business rules are left to scoring.validate.

    Raises:
        ValueError if the payload is not shaped like a receipt
    """
    validate_receipt_json_structure(payload)
    items = tuple(Item(short_description=item["shortDescription"],
                       price=parse_amount(item["price"], "item price"))
                  for item in payload["items"])
    return Receipt(retailer=payload["retailer"],
                   purchase_date=payload["purchaseDate"],
                   purchase_time=payload["purchaseTime"],
                   items=items,
                   total=parse_amount(payload["total"], "receipt total"))


class ReceiptStore:
    """
    In-memory receipt storage keyed by generated uuid4 strings. Receipts are
    validated before they are accepted, so everything in the store can be scored.
    """

    def __init__(self):
        self._receipts: Dict[str, Receipt] = {}
        self._lock = threading.Lock()

    def submit(self, receipt: Receipt) -> str:
        problems = validate(receipt)
        if problems:
            raise InvalidReceiptError(problems)
        receipt_id = str(uuid4())
        with self._lock:
            self._receipts[receipt_id] = receipt
        logger.info("Receipt stored with ID: %s", receipt_id)
        return receipt_id

    def get(self, receipt_id: str) -> Receipt:
        with self._lock:
            receipt = self._receipts.get(receipt_id)
        if receipt is None:
            raise ReceiptNotFoundError(receipt_id)
        return receipt

    def snapshot(self) -> List[Tuple[str, Receipt]]:
        with self._lock:
            return list(self._receipts.items())

    def __len__(self):
        with self._lock:
            return len(self._receipts)
