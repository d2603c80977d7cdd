"""
Custom validators for marketplace models.
"""

import re
from decimal import Decimal

from django.core.exceptions import ValidationError


def validate_phone_number(value):
    """
    Validate phone number format.

    Accepts international formats with optional country codes, spaces, dashes, and parentheses.
    Requires at least 10 digits.

    Valid formats:
    - +1-234-567-8900
    - +44 20 7946 0958
    - 234-567-8900

    Args:
        value: Phone number string to validate

    Raises:
        ValidationError: If phone number format is invalid
    """
    if not value:  # Empty string is allowed (optional field)
        return

    if not re.match(r'^[\d\s\-\+\(\)]+$', value):
        raise ValidationError(
            'Phone number can only contain digits, spaces, dashes, parentheses, and plus sign.',
            code='invalid_phone_chars'
        )

    digits = re.sub(r'\D', '', value)

    if len(digits) < 10:
        raise ValidationError(
            'Phone number must contain at least 10 digits.',
            code='phone_too_short'
        )

    # Must not be all the same digit (like 0000000000)
    if len(set(digits)) == 1:
        raise ValidationError(
            'Phone number cannot be all the same digit.',
            code='invalid_phone_pattern'
        )


def validate_positive_price(value):
    """
    Validate that a listed price is greater than zero.

    None is accepted: a product may be listed without a sale
    or rental price.
    """
    if value is None:
        return

    if Decimal(value) <= 0:
        raise ValidationError(
            'Price must be greater than 0.',
            code='price_not_positive'
        )


def validate_date_range(start_date, end_date):
    """
    Validate an inclusive rental window.

    Raises:
        ValidationError: If either bound is missing or start is after end
    """
    if start_date is None or end_date is None:
        raise ValidationError(
            'Both start_date and end_date are required for a rental.',
            code='rental_dates_required'
        )

    if start_date > end_date:
        raise ValidationError(
            'start_date must be on or before end_date.',
            code='invalid_date_range'
        )
