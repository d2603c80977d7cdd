"""
Transaction lifecycle and catalog operations.

Every function here is stateless: it receives plain identifiers and values,
works against the database through the ORM and either returns model
instances or raises one of the errors in ``marketplace.exceptions``.

Operations that check state before writing (creating and completing
transactions, editing products) run inside ``transaction.atomic()`` and
lock the product row with ``select_for_update()``, so two concurrent
requests on the same product cannot both pass their checks.
"""

import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction

from . import availability
from .exceptions import Conflict, Forbidden, InvalidInput, NotFound
from .models import Category, Product, Transaction

logger = logging.getLogger(__name__)

PRODUCT_FIELDS = ('name', 'description', 'price_buy', 'price_rent', 'rent_option')

# Listing hides products with a sale in either state; see list_available_products()
LISTING_BLOCKING_SALE_STATUSES = (Transaction.PENDING, Transaction.COMPLETED)


def _parse_id(value, label):
    """Convert an opaque identifier to an integer primary key."""
    if isinstance(value, bool):
        raise InvalidInput(f'Invalid {label} id: {value!r}.')
    try:
        pk = int(value)
    except (TypeError, ValueError):
        raise InvalidInput(f'Invalid {label} id: {value!r}.')
    if pk <= 0:
        raise InvalidInput(f'Invalid {label} id: {value!r}.')
    return pk


def _as_date(value):
    if isinstance(value, datetime):
        return value.date()
    return value


def _parse_price(value):
    try:
        price = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidInput(f'Invalid price: {value!r}.')
    if not price.is_finite() or price < 0:
        raise InvalidInput('Price must be a non-negative number.')
    return price


def _save(instance, **kwargs):
    """Save a model instance, turning model validation errors into InvalidInput."""
    try:
        instance.save(**kwargs)
    except DjangoValidationError as e:
        raise InvalidInput(' '.join(e.messages))


def _with_details(queryset):
    return queryset.select_related('product', 'product__owner', 'user')


# ============================================================================
# Availability
# ============================================================================

def check_availability(product_id, start_date=None, end_date=None):
    """
    Read-only availability verdict for a product and optional rental window.

    Only COMPLETED rentals block the window here; creation is stricter.

    Returns:
        availability.Availability
    """
    product_id = _parse_id(product_id, 'product')
    product = Product.objects.filter(pk=product_id).first()
    if product is None:
        return availability.evaluate(None, [])

    return availability.evaluate(
        product,
        _with_details(Transaction.objects.filter(product=product)),
        _as_date(start_date),
        _as_date(end_date),
        statuses=availability.CHECK_BLOCKING_STATUSES,
    )


# ============================================================================
# Transaction lifecycle
# ============================================================================

def create_transaction(product_id, user_id, transaction_type, price, start_date=None, end_date=None):
    """
    Create a PENDING purchase or rental request.

    Preconditions, in order:
    1. Product exists and is live (NotFound)
    2. Caller is not the product owner (Forbidden)
    3. Product has no COMPLETED sale (Conflict)
    4. For RENT: both dates present and ordered (InvalidInput), and no
       PENDING or COMPLETED rental overlaps the window (Conflict)

    Returns:
        Transaction: the new row with product, owner and user loaded
    """
    if transaction_type not in (Transaction.BUY, Transaction.RENT):
        raise InvalidInput(f"Invalid transaction type: {transaction_type!r}. Must be BUY or RENT.")
    price = _parse_price(price)
    product_id = _parse_id(product_id, 'product')
    user_id = _parse_id(user_id, 'user')
    start_date = _as_date(start_date)
    end_date = _as_date(end_date)

    with transaction.atomic():
        product = Product.objects.select_for_update().filter(pk=product_id).first()
        if product is None:
            raise NotFound(availability.REASON_NOT_FOUND)

        if product.owner_id == user_id:
            raise Forbidden('You cannot transact on your own product.')

        existing = list(Transaction.objects.filter(product=product))

        if availability.has_completed_sale(existing):
            raise Conflict(availability.REASON_SOLD)

        if transaction_type == Transaction.RENT:
            if start_date is None or end_date is None:
                raise InvalidInput('Rentals require both start_date and end_date.')
            if start_date > end_date:
                raise InvalidInput('start_date must be on or before end_date.')

            conflicts = availability.find_rental_conflicts(
                existing, start_date, end_date, availability.BOOKING_BLOCKING_STATUSES
            )
            if conflicts:
                logger.warning(
                    f"Rental window {start_date}..{end_date} on product {product.id} "
                    f"overlaps transactions {[c.id for c in conflicts]}"
                )
                raise Conflict(availability.REASON_RENTED)
        else:
            start_date = end_date = None

        txn = Transaction(
            product=product,
            user_id=user_id,
            type=transaction_type,
            status=Transaction.PENDING,
            price=price,
            start_date=start_date,
            end_date=end_date,
        )
        _save(txn)

    return _with_details(Transaction.objects).get(pk=txn.pk)


def complete_transaction(transaction_id, acting_user_id):
    """
    Approve a transaction. Only the product owner may do this.

    Completing an already COMPLETED transaction returns it unchanged.
    Completing any transaction on a product that already has a different
    COMPLETED sale is rejected, so a product is never sold twice.

    Returns:
        Transaction: the completed row with product, owner and user loaded
    """
    transaction_id = _parse_id(transaction_id, 'transaction')
    acting_user_id = _parse_id(acting_user_id, 'user')

    with transaction.atomic():
        txn = Transaction.objects.filter(pk=transaction_id).first()
        if txn is None:
            raise NotFound(f'Transaction with ID {transaction_id} does not exist.')

        # Product row first, same lock order as create_transaction()
        product = Product.all_objects.select_for_update().get(pk=txn.product_id)
        txn = Transaction.objects.select_for_update().get(pk=txn.pk)

        if product.owner_id != acting_user_id:
            raise Forbidden('Only the product owner can complete this transaction.')

        if txn.status == Transaction.COMPLETED:
            logger.info(f"Transaction {txn.id} already completed; nothing to do")
            return _with_details(Transaction.objects).get(pk=txn.pk)

        if not txn.can_transition_to(Transaction.COMPLETED):
            raise Conflict(f'Cannot complete a transaction in status {txn.status}.')

        sales = Transaction.objects.filter(product=product, type=Transaction.BUY)
        if availability.has_completed_sale(sales, exclude_id=txn.id):
            logger.warning(
                f"Refusing to complete transaction {txn.id}: product {product.id} already sold"
            )
            raise Conflict(availability.REASON_SOLD)

        txn.status = Transaction.COMPLETED
        _save(txn, update_fields=['status', 'updated_at'])

    return _with_details(Transaction.objects).get(pk=txn.pk)


def get_transaction(transaction_id, viewer_id):
    """
    Return one transaction, visible only to its acting user and the
    product owner.
    """
    transaction_id = _parse_id(transaction_id, 'transaction')
    viewer_id = _parse_id(viewer_id, 'user')

    txn = _with_details(Transaction.objects).filter(pk=transaction_id).first()
    if txn is None:
        raise NotFound(f'Transaction with ID {transaction_id} does not exist.')

    if viewer_id not in (txn.user_id, txn.product.owner_id):
        raise Forbidden('You do not have permission to view this transaction.')

    return txn


def list_user_transactions(user_id):
    """
    Partition the live transactions a user takes part in.

    Returns:
        dict with keys:
        - bought: BUY transactions the user made
        - sold: BUY transactions on the user's products
        - borrowed: RENT transactions the user made
        - lent: RENT transactions on the user's products
    """
    user_id = _parse_id(user_id, 'user')
    base = _with_details(Transaction.objects)

    return {
        'bought': list(base.filter(user_id=user_id, type=Transaction.BUY)),
        'sold': list(base.filter(product__owner_id=user_id, type=Transaction.BUY)),
        'borrowed': list(base.filter(user_id=user_id, type=Transaction.RENT)),
        'lent': list(base.filter(product__owner_id=user_id, type=Transaction.RENT)),
    }


def list_pending_for_owner(owner_id):
    """Approval queue: PENDING transactions on the owner's products, newest first."""
    owner_id = _parse_id(owner_id, 'user')
    return list(
        _with_details(Transaction.objects)
        .filter(product__owner_id=owner_id, status=Transaction.PENDING)
        .order_by('-created_at', '-id')
    )


def list_available_products():
    """
    Live products for the general listing.

    Stricter than check_availability(): a product disappears as soon as it
    has a PENDING sale, not only a COMPLETED one, so two buyers do not act
    on the same listing at once.
    """
    sales = Transaction.objects.filter(
        type=Transaction.BUY,
        status__in=LISTING_BLOCKING_SALE_STATUSES,
    ).values('product_id')

    return list(
        Product.objects.exclude(pk__in=sales)
        .select_related('owner')
        .prefetch_related('categories')
    )


# ============================================================================
# Catalog
# ============================================================================

def _resolve_categories(category_ids):
    ids = {_parse_id(category_id, 'category') for category_id in category_ids}
    categories = list(Category.objects.filter(pk__in=ids))
    if len(categories) != len(ids):
        missing = sorted(ids - {c.pk for c in categories})
        raise InvalidInput(f'Unknown category ids: {missing}.')
    return categories


def _get_owned_product(product_id, acting_user_id):
    product = Product.objects.select_for_update().filter(pk=product_id).first()
    if product is None:
        raise NotFound(availability.REASON_NOT_FOUND)
    if product.owner_id != acting_user_id:
        raise Forbidden('Only the product owner can modify this product.')
    return product


def get_product(product_id):
    product_id = _parse_id(product_id, 'product')
    product = (
        Product.objects.select_related('owner')
        .prefetch_related('categories')
        .filter(pk=product_id)
        .first()
    )
    if product is None:
        raise NotFound(availability.REASON_NOT_FOUND)
    return product


def list_products_by_owner(owner_id):
    owner_id = _parse_id(owner_id, 'user')
    return list(
        Product.objects.filter(owner_id=owner_id)
        .select_related('owner')
        .prefetch_related('categories')
    )


def create_product(owner_id, name, description, price_buy=None, price_rent=None,
                   rent_option=None, category_ids=None):
    owner_id = _parse_id(owner_id, 'user')

    with transaction.atomic():
        product = Product(
            owner_id=owner_id,
            name=name,
            description=description,
            price_buy=price_buy,
            price_rent=price_rent,
            rent_option=rent_option,
        )
        _save(product)
        if category_ids:
            product.categories.set(_resolve_categories(category_ids))

    return get_product(product.pk)


def update_product(product_id, acting_user_id, **fields):
    """
    Update listing fields of a product. Only the owner may do this.

    ``category_ids``, when given, replaces the product's categories.
    """
    product_id = _parse_id(product_id, 'product')
    acting_user_id = _parse_id(acting_user_id, 'user')
    category_ids = fields.pop('category_ids', None)

    unknown = set(fields) - set(PRODUCT_FIELDS)
    if unknown:
        raise InvalidInput(f'Unknown product fields: {sorted(unknown)}.')

    with transaction.atomic():
        product = _get_owned_product(product_id, acting_user_id)
        for name, value in fields.items():
            setattr(product, name, value)
        _save(product)
        if category_ids is not None:
            product.categories.set(_resolve_categories(category_ids))

    return get_product(product.pk)


def delete_product(product_id, acting_user_id):
    """
    Soft-delete a product. Its transactions are kept for history but it no
    longer appears in listings and cannot be transacted on.
    """
    product_id = _parse_id(product_id, 'product')
    acting_user_id = _parse_id(acting_user_id, 'user')

    with transaction.atomic():
        product = _get_owned_product(product_id, acting_user_id)
        product.deleted = True
        _save(product, update_fields=['deleted', 'updated_at'])

    return product


def list_categories():
    return list(Category.objects.all())


def create_category(name):
    name = (name or '').strip().upper()
    if not name:
        raise InvalidInput('Category name cannot be empty.')

    if Category.objects.filter(name=name).exists():
        raise Conflict('Category already exists.')

    try:
        with transaction.atomic():
            return Category.objects.create(name=name)
    except IntegrityError:
        # Concurrent creation of the same name
        raise Conflict('Category already exists.')
