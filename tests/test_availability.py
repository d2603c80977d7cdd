"""
Test suite for product availability.

Tests cover:
- Inclusive interval overlap
- Rental conflict scan and its status filter
- Verdict order (missing product, sold, rented, available)
- check_availability service and the public availability endpoint
"""

from datetime import date, datetime
from decimal import Decimal

import pytest
from rest_framework import status

from marketplace import availability, services
from marketplace.exceptions import InvalidInput
from marketplace.models import Product, Transaction


def rental(id, start, end, status=Transaction.COMPLETED):
    return Transaction(id=id, type=Transaction.RENT, status=status,
                       start_date=start, end_date=end)


def sale(id, status=Transaction.COMPLETED):
    return Transaction(id=id, type=Transaction.BUY, status=status)


class TestRangesOverlap:

    def test_disjoint_ranges(self):
        assert not availability.ranges_overlap(
            date(2024, 1, 1), date(2024, 1, 5), date(2024, 1, 6), date(2024, 1, 10)
        )

    def test_touching_endpoints_overlap(self):
        assert availability.ranges_overlap(
            date(2024, 1, 1), date(2024, 1, 10), date(2024, 1, 10), date(2024, 1, 15)
        )

    def test_contained_range_overlaps(self):
        assert availability.ranges_overlap(
            date(2024, 1, 1), date(2024, 1, 31), date(2024, 1, 10), date(2024, 1, 12)
        )

    def test_single_day_ranges(self):
        day = date(2024, 1, 3)
        assert availability.ranges_overlap(day, day, day, day)
        assert not availability.ranges_overlap(day, day, date(2024, 1, 4), date(2024, 1, 4))

    def test_order_of_arguments_does_not_matter(self):
        a = (date(2024, 1, 1), date(2024, 1, 5))
        b = (date(2024, 1, 5), date(2024, 1, 9))
        assert availability.ranges_overlap(*a, *b) == availability.ranges_overlap(*b, *a)


class TestFindRentalConflicts:

    def test_only_blocking_statuses_count(self):
        pending = rental(1, date(2024, 1, 1), date(2024, 1, 10), Transaction.PENDING)
        completed = rental(2, date(2024, 1, 5), date(2024, 1, 6))

        conflicts = availability.find_rental_conflicts(
            [pending, completed], date(2024, 1, 3), date(2024, 1, 7),
            availability.CHECK_BLOCKING_STATUSES,
        )
        assert conflicts == [completed]

        conflicts = availability.find_rental_conflicts(
            [pending, completed], date(2024, 1, 3), date(2024, 1, 7),
            availability.BOOKING_BLOCKING_STATUSES,
        )
        assert conflicts == [pending, completed]

    def test_sales_are_ignored(self):
        conflicts = availability.find_rental_conflicts(
            [sale(1)], date(2024, 1, 1), date(2024, 1, 2),
            availability.BOOKING_BLOCKING_STATUSES,
        )
        assert conflicts == []

    def test_reversed_window_has_no_conflicts(self):
        conflicts = availability.find_rental_conflicts(
            [rental(1, date(2024, 1, 1), date(2024, 1, 31))],
            date(2024, 1, 10), date(2024, 1, 5),
            availability.BOOKING_BLOCKING_STATUSES,
        )
        assert conflicts == []


class TestHasCompletedSale:

    def test_pending_sale_is_not_a_sale(self):
        assert not availability.has_completed_sale([sale(1, Transaction.PENDING)])

    def test_completed_sale(self):
        assert availability.has_completed_sale([rental(1, date(2024, 1, 1), date(2024, 1, 2)), sale(2)])

    def test_excluded_id_is_skipped(self):
        assert not availability.has_completed_sale([sale(7)], exclude_id=7)


class TestEvaluate:

    def test_missing_product(self):
        verdict = availability.evaluate(None, [])
        assert verdict.available is False
        assert verdict.reason == availability.REASON_NOT_FOUND

    def test_deleted_product(self):
        verdict = availability.evaluate(Product(deleted=True), [])
        assert verdict.available is False
        assert verdict.reason == 'Product not found or deleted'

    def test_sold_product_blocks_every_window(self):
        verdict = availability.evaluate(Product(), [sale(1)], date(2030, 1, 1), date(2030, 1, 2))
        assert verdict.available is False
        assert verdict.reason == 'Product has been sold'
        assert verdict.conflicts == []

    def test_sold_wins_over_rental_conflict(self):
        transactions = [rental(1, date(2024, 1, 1), date(2024, 1, 10)), sale(2)]
        verdict = availability.evaluate(Product(), transactions, date(2024, 1, 5), date(2024, 1, 6))
        assert verdict.reason == availability.REASON_SOLD

    def test_completed_rental_overlap(self):
        booked = rental(1, date(2024, 1, 1), date(2024, 1, 10))
        verdict = availability.evaluate(Product(), [booked], date(2024, 1, 10), date(2024, 1, 15))
        assert verdict.available is False
        assert verdict.reason == 'Product is already rented during the selected time period'
        assert verdict.conflicts == [booked]

    def test_pending_rental_does_not_block_standalone_check(self):
        pending = rental(1, date(2024, 1, 1), date(2024, 1, 10), Transaction.PENDING)
        verdict = availability.evaluate(Product(), [pending], date(2024, 1, 5), date(2024, 1, 6))
        assert verdict.available is True

    def test_pending_rental_blocks_with_booking_statuses(self):
        pending = rental(1, date(2024, 1, 1), date(2024, 1, 10), Transaction.PENDING)
        verdict = availability.evaluate(
            Product(), [pending], date(2024, 1, 5), date(2024, 1, 6),
            statuses=availability.BOOKING_BLOCKING_STATUSES,
        )
        assert verdict.available is False

    def test_without_dates_rentals_are_not_scanned(self):
        verdict = availability.evaluate(Product(), [rental(1, date(2024, 1, 1), date(2024, 1, 10))])
        assert verdict.available is True
        assert verdict.reason == 'Product is available'

    def test_open_window_is_quoted(self):
        product = Product(price_rent=Decimal('12.00'), rent_option=Product.DAILY)
        verdict = availability.evaluate(product, [], date(2024, 1, 1), date(2024, 1, 3))
        assert verdict.quote == Decimal('36.00')

    def test_no_quote_without_rent_price(self):
        product = Product(price_buy=Decimal('100.00'))
        verdict = availability.evaluate(product, [], date(2024, 1, 1), date(2024, 1, 3))
        assert verdict.available is True
        assert verdict.quote is None


@pytest.mark.django_db
class TestCheckAvailabilityService:

    def test_available_product(self, product):
        verdict = services.check_availability(product.id)
        assert verdict.available is True

    def test_unknown_product(self, db):
        verdict = services.check_availability(999999)
        assert verdict.available is False
        assert verdict.reason == availability.REASON_NOT_FOUND

    def test_soft_deleted_product(self, product):
        product.deleted = True
        product.save()

        verdict = services.check_availability(product.id)
        assert verdict.reason == availability.REASON_NOT_FOUND

    def test_invalid_identifier(self, db):
        with pytest.raises(InvalidInput):
            services.check_availability('abc')

    def test_accepts_datetimes(self, product, renter, txn_factory, jan):
        txn_factory(product, renter, status=Transaction.COMPLETED,
                    start_date=jan(1), end_date=jan(10))

        verdict = services.check_availability(
            product.id, datetime(2024, 1, 10, 12, 0), datetime(2024, 1, 12, 9, 0)
        )
        assert verdict.available is False
        assert [c.start_date for c in verdict.conflicts] == [jan(1)]

    def test_soft_deleted_rental_is_ignored(self, product, renter, txn_factory, jan):
        txn_factory(product, renter, status=Transaction.COMPLETED,
                    start_date=jan(1), end_date=jan(10), deleted=True)

        verdict = services.check_availability(product.id, jan(5), jan(6))
        assert verdict.available is True

    def test_pending_sale_still_reports_available(self, product, renter, txn_factory):
        txn_factory(product, renter, type=Transaction.BUY, price='150.00')

        assert services.check_availability(product.id).available is True
        assert product.id not in [p.id for p in services.list_available_products()]


@pytest.mark.django_db
class TestAvailabilityEndpoint:

    def url(self, product_id):
        return f'/api/products/{product_id}/availability/'

    def test_public_without_authentication(self, api_client, product):
        response = api_client.get(self.url(product.id))

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {'available': True, 'reason': 'Product is available'}

    def test_conflicting_rentals_listed(self, api_client, product, renter, txn_factory, jan):
        booked = txn_factory(product, renter, status=Transaction.COMPLETED,
                             start_date=jan(1), end_date=jan(10))

        response = api_client.get(
            self.url(product.id), {'start_date': '2024-01-10', 'end_date': '2024-01-15'}
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['available'] is False
        assert response.data['reason'] == availability.REASON_RENTED
        assert [r['id'] for r in response.data['conflicting_rentals']] == [booked.id]
        assert response.data['conflicting_rentals'][0]['user']['email'] == 'renter@test.com'

    def test_datetime_query_values(self, api_client, product):
        response = api_client.get(
            self.url(product.id),
            {'start_date': '2024-01-10T00:00:00Z', 'end_date': '2024-01-12T00:00:00Z'},
        )
        assert response.status_code == status.HTTP_200_OK

    def test_only_one_date_rejected(self, api_client, product):
        response = api_client.get(self.url(product.id), {'start_date': '2024-01-10'})
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_reversed_range_rejected(self, api_client, product):
        response = api_client.get(
            self.url(product.id), {'start_date': '2024-01-10', 'end_date': '2024-01-05'}
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_malformed_date_rejected(self, api_client, product):
        response = api_client.get(
            self.url(product.id), {'start_date': 'tomorrow', 'end_date': '2024-01-05'}
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'start_date' in response.data

    def test_unknown_product_is_a_verdict(self, api_client, db):
        response = api_client.get(self.url(424242))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['available'] is False
        assert response.data['reason'] == availability.REASON_NOT_FOUND

    def test_zero_product_id_rejected(self, api_client, db):
        response = api_client.get(self.url(0))

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'invalid_input'

    def test_quote_for_open_window(self, api_client, product):
        response = api_client.get(
            self.url(product.id), {'start_date': '2024-01-01', 'end_date': '2024-01-03'}
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['available'] is True
        assert response.data['quote'] == '36.00'

    def test_no_quote_when_window_is_taken(self, api_client, product, renter, txn_factory, jan):
        txn_factory(product, renter, status=Transaction.COMPLETED,
                    start_date=jan(1), end_date=jan(10))

        response = api_client.get(
            self.url(product.id), {'start_date': '2024-01-02', 'end_date': '2024-01-03'}
        )
        assert 'quote' not in response.data
