import logging
import math
from datetime import datetime, time
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import List, NamedTuple, Tuple

logger = logging.getLogger(__name__)

RECEIPT_DATE_FORMAT = '%Y-%m-%d'
RECEIPT_TIME_FORMAT = '%H:%M'
CENT = Decimal('0.01')
POINTS_RETAILER_NAME_ALPHANUM_CHARACTER = 1
POINTS_TOTAL_HAS_NO_CENTS = 50
POINTS_TOTAL_IS_MULTIPLE_OF_QUARTERS = 25
POINTS_ITEMS_COUNT = 5
POINTS_ITEM_DESCRIPTION = Decimal('0.2')
POINTS_ODD_PURCHASE_DAY = 6
POINTS_VALID_PURCHASE_HOUR = 10
REWARD_ITEM_DESCRIPTION_LENGTH_FACTOR = 3
REWARD_TIME_START = time(14, 0)
REWARD_TIME_END = time(16, 0)


class InvalidReceiptError(ValueError):
    """ Raised when a receipt fails validation; `problems` holds every message """

    def __init__(self, problems: List[str]):
        super().__init__("Error: receipt failed validation")
        self.problems = list(problems)


class ScoreEntry(NamedTuple):
    points: int
    explanation: str = ""

    def render(self) -> str:
        return f"{self.points} points - {self.explanation}"


def strip_non_alphanumeric(text: str) -> str:
    """ Keeps ASCII letters and digits only """
    return "".join(c for c in text if c.isascii() and c.isalnum())


def trimmed(text: str) -> str:
    return text.strip()


def to_cents(amount: Decimal) -> int:
    with localcontext() as ctx:
        # room for every integer digit plus the two cents digits
        ctx.prec = max(ctx.prec, amount.adjusted() + 3)
        return int(amount.quantize(CENT, rounding=ROUND_HALF_UP) * 100)


def parse_purchase_date(value: str) -> datetime:
    """ Parses a zero-padded YYYY-MM-DD date, raising ValueError otherwise """
    parsed = datetime.strptime(value, RECEIPT_DATE_FORMAT)
    # strptime accepts unpadded fields such as 2022-1-1
    if f"{parsed.year:04d}-{parsed.month:02d}-{parsed.day:02d}" != value:
        raise ValueError(f"unpadded purchase date ({value})")
    return parsed


def parse_purchase_time(value: str) -> time:
    """ Parses a zero-padded 24-hour HH:MM time, raising ValueError otherwise """
    parsed = datetime.strptime(value, RECEIPT_TIME_FORMAT)
    if parsed.strftime(RECEIPT_TIME_FORMAT) != value:
        raise ValueError(f"unpadded purchase time ({value})")
    return parsed.time()


def _is_valid(parser, value: str) -> bool:
    try:
        parser(value)
    except ValueError:
        return False
    return True


def validate(receipt) -> List[str]:
    """
    Checks a receipt for problems that block acceptance. Every check runs,
    and item problems are reported once per receipt rather than once per item.

    Returns:
        list of human-readable problem descriptions, empty when the receipt is acceptable
    """
    problems = []

    if any(item.price == 0 for item in receipt.items):
        problems.append("Item is missing or has an invalid price")

    if any(len(item.short_description) == 0 for item in receipt.items):
        problems.append("Item is missing or has an invalid short description")

    items_cents = to_cents(sum((item.price for item in receipt.items), Decimal(0)))
    total_cents = to_cents(receipt.total)
    if items_cents != total_cents:
        problems.append(f"Total does not match sum of items. "
                        f"Total from items: {Decimal(items_cents) / 100:.2f} "
                        f"Total from receipt: {Decimal(total_cents) / 100:.2f}")

    if not _is_valid(parse_purchase_date, receipt.purchase_date):
        problems.append("PurchaseDate is an invalid date. Please use the format YYYY-MM-DD")

    if not _is_valid(parse_purchase_time, receipt.purchase_time):
        problems.append("PurchaseTime is an invalid time. Please use the format HH:MM")

    if len(strip_non_alphanumeric(receipt.retailer)) == 0:
        problems.append("Retailer is empty")

    return problems


def score_retailer(receipt) -> ScoreEntry:
    """ One point for every alphanumeric character in the retailer name """
    name = strip_non_alphanumeric(receipt.retailer)
    points = len(name) * POINTS_RETAILER_NAME_ALPHANUM_CHARACTER
    return ScoreEntry(points, f'retailer: "{name}" has {len(name)} alphanumeric characters')


def score_round_total(receipt) -> ScoreEntry:
    if to_cents(receipt.total) % 100 == 0:
        return ScoreEntry(POINTS_TOTAL_HAS_NO_CENTS, "total is a round dollar amount with no cents")
    return ScoreEntry(0)


def score_quarter_total(receipt) -> ScoreEntry:
    if to_cents(receipt.total) % 25 == 0:
        return ScoreEntry(POINTS_TOTAL_IS_MULTIPLE_OF_QUARTERS, "total is a multiple of 0.25")
    return ScoreEntry(0)


def score_item_pairs(receipt) -> ScoreEntry:
    """ Five points for every two items, no credit for an odd leftover """
    count = len(receipt.items)
    pairs = count // 2
    return ScoreEntry(pairs * POINTS_ITEMS_COUNT,
                      f"{count} items ({pairs} pairs @ {POINTS_ITEMS_COUNT} points per pair)")


def score_item_descriptions(receipt) -> List[ScoreEntry]:
    """
    For each item whose trimmed description length is a multiple of 3, the
    price times 0.2 rounded up is awarded. An empty trimmed description has
    length 0 and qualifies.
    """
    entries = []
    for item in receipt.items:
        description = trimmed(item.short_description)
        if len(description) % REWARD_ITEM_DESCRIPTION_LENGTH_FACTOR != 0:
            continue
        points = max(math.ceil(item.price * POINTS_ITEM_DESCRIPTION), 0)
        entries.append(ScoreEntry(points, f'"{description}" has {len(description)} characters '
                                          f'and is a multiple of {REWARD_ITEM_DESCRIPTION_LENGTH_FACTOR}'))
    return entries


def score_purchase_day(receipt) -> ScoreEntry:
    if parse_purchase_date(receipt.purchase_date).day % 2 == 1:
        return ScoreEntry(POINTS_ODD_PURCHASE_DAY, f"date of {receipt.purchase_date} is odd")
    return ScoreEntry(0)


def score_purchase_time(receipt) -> ScoreEntry:
    """ Both ends of the 2:00pm to 4:00pm window are excluded """
    if REWARD_TIME_START < parse_purchase_time(receipt.purchase_time) < REWARD_TIME_END:
        return ScoreEntry(POINTS_VALID_PURCHASE_HOUR,
                          f"time of {receipt.purchase_time} is after 2:00pm and before 4:00pm")
    return ScoreEntry(0)


def score_entries(receipt) -> List[ScoreEntry]:
    """ Evaluates all seven rules in order; rule 5 yields one entry per qualifying item """
    entries = [score_retailer(receipt), score_round_total(receipt), score_quarter_total(receipt),
               score_item_pairs(receipt)]
    entries.extend(score_item_descriptions(receipt))
    entries.append(score_purchase_day(receipt))
    entries.append(score_purchase_time(receipt))
    return entries


def score(receipt) -> Tuple[int, List[str]]:
    """
    Validates the receipt, then calculates its points and the breakdown lines
    explaining them. Total and breakdown come from the same entries.

    Raises:
        InvalidReceiptError if the receipt does not pass validation
    """
    problems = validate(receipt)
    if problems:
        raise InvalidReceiptError(problems)
    entries = score_entries(receipt)
    total = 0
    for entry in entries:
        total += entry.points
        logger.debug("%d points - running total %d", entry.points, total)
    breakdown = [entry.render() for entry in entries if entry.explanation]
    breakdown.append(f"{total} points - total points")
    return total, breakdown


def calculate_points(receipt) -> int:
    return score(receipt)[0]


def calculate_breakdown(receipt) -> List[str]:
    return score(receipt)[1]
