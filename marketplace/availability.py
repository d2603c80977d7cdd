"""
Availability decisions for products.

Everything in this module works on rows that have already been loaded; it
never touches the database. ``services`` loads the product and its
transactions and hands them over, both for the read-only availability query
and for the checks run while creating a transaction.

Two status sets are used on purpose:

- ``CHECK_BLOCKING_STATUSES``: the standalone availability query only treats
  COMPLETED rentals as blocking.
- ``BOOKING_BLOCKING_STATUSES``: creating a rental also refuses windows that
  overlap a PENDING rental, so a request awaiting approval cannot be
  double-booked.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from .models import Transaction

REASON_NOT_FOUND = 'Product not found or deleted'
REASON_SOLD = 'Product has been sold'
REASON_RENTED = 'Product is already rented during the selected time period'
REASON_AVAILABLE = 'Product is available'

CHECK_BLOCKING_STATUSES = frozenset([Transaction.COMPLETED])
BOOKING_BLOCKING_STATUSES = frozenset([Transaction.PENDING, Transaction.COMPLETED])


@dataclass
class Availability:
    """Verdict for a product and an optional rental window."""

    available: bool
    reason: str
    conflicts: list = field(default_factory=list)
    # Listed rental price for the requested window, when the product is for rent
    quote: Decimal = None


def ranges_overlap(a_start, a_end, b_start, b_end):
    """
    Return True if the closed ranges [a_start, a_end] and [b_start, b_end]
    share at least one point. Touching endpoints overlap.
    """
    return a_start <= b_end and b_start <= a_end


def has_completed_sale(transactions, exclude_id=None):
    """Return True if any transaction other than ``exclude_id`` is a COMPLETED BUY."""
    for txn in transactions:
        if txn.id is not None and txn.id == exclude_id:
            continue
        if txn.type == Transaction.BUY and txn.status == Transaction.COMPLETED:
            return True
    return False


def find_rental_conflicts(transactions, start_date, end_date, statuses):
    """
    Return the RENT transactions in ``statuses`` whose window overlaps
    [start_date, end_date], in input order.

    A reversed window (start after end) cannot overlap anything and yields
    an empty list.
    """
    if start_date > end_date:
        return []

    conflicts = []
    for txn in transactions:
        if txn.type != Transaction.RENT or txn.status not in statuses:
            continue
        if txn.start_date is None or txn.end_date is None:
            continue
        if ranges_overlap(txn.start_date, txn.end_date, start_date, end_date):
            conflicts.append(txn)
    return conflicts


def evaluate(product, transactions, start_date=None, end_date=None,
             statuses=CHECK_BLOCKING_STATUSES):
    """
    Decide whether ``product`` can be acquired.

    Checks, in order: the product exists and is live, it has not been sold,
    and (when both dates are given) no rental in ``statuses`` overlaps the
    requested window.

    Args:
        product: Product instance or None
        transactions: Live transactions of the product
        start_date: Optional start of the requested rental window
        end_date: Optional end of the requested rental window
        statuses: Rental statuses that block the window

    Returns:
        Availability: verdict with reason, any conflicting rentals and,
        for an open window, the listed rental quote
    """
    if product is None or product.deleted:
        return Availability(False, REASON_NOT_FOUND)

    transactions = list(transactions)

    if has_completed_sale(transactions):
        return Availability(False, REASON_SOLD)

    if start_date is None or end_date is None:
        return Availability(True, REASON_AVAILABLE)

    conflicts = find_rental_conflicts(transactions, start_date, end_date, statuses)
    if conflicts:
        return Availability(False, REASON_RENTED, conflicts)

    quote = product.quote_rent(start_date, end_date) if start_date <= end_date else None
    return Availability(True, REASON_AVAILABLE, quote=quote)
