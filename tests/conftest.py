"""
Shared fixtures for the Kinbay test suite.
"""

from datetime import date
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from marketplace.models import Category, Product, Transaction

User = get_user_model()


def make_user(email, password='TestPass123!', **extra):
    return User.objects.create_user(
        username=email,
        email=email,
        password=password,
        **extra
    )


def make_transaction(product, user, type=Transaction.RENT, status=Transaction.PENDING,
                     price='10.00', start_date=None, end_date=None, **extra):
    """Insert a transaction row directly, bypassing the service checks."""
    return Transaction.objects.create(
        product=product,
        user=user,
        type=type,
        status=status,
        price=Decimal(price),
        start_date=start_date,
        end_date=end_date,
        **extra
    )


def bearer(user):
    """Authorization header value for a user."""
    return f'Bearer {RefreshToken.for_user(user).access_token}'


@pytest.fixture
def api_client():
    """Return API client for testing."""
    return APIClient()


@pytest.fixture
def owner(db):
    """User who lists products."""
    return make_user('owner@test.com', first_name='Olivia', last_name='Owner')


@pytest.fixture
def renter(db):
    """User who rents and buys products."""
    return make_user('renter@test.com', first_name='Ray', last_name='Renter')


@pytest.fixture
def other_user(db):
    """A second acting user."""
    return make_user('other@test.com', first_name='Oscar', last_name='Other')


@pytest.fixture
def category(db):
    return Category.objects.create(name='TOOLS')


@pytest.fixture
def product(db, owner, category):
    """Product offered for sale and for daily rental."""
    product = Product.objects.create(
        owner=owner,
        name='Cordless Drill',
        description='18V drill with two batteries.',
        price_buy=Decimal('150.00'),
        price_rent=Decimal('12.00'),
        rent_option=Product.DAILY,
    )
    product.categories.add(category)
    return product


@pytest.fixture
def owner_client(owner):
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=bearer(owner))
    return client


@pytest.fixture
def renter_client(renter):
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=bearer(renter))
    return client


@pytest.fixture
def other_client(other_user):
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=bearer(other_user))
    return client


@pytest.fixture
def jan():
    """Build a date in January 2024: ``jan(10)`` is 2024-01-10."""
    return lambda day: date(2024, 1, day)


@pytest.fixture
def txn_factory(db):
    return make_transaction


@pytest.fixture
def user_factory(db):
    return make_user


@pytest.fixture
def client_for():
    """Build an APIClient authenticated as the given user."""
    def build(user):
        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=bearer(user))
        return client
    return build
