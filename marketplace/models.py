"""
Models for the Kinbay marketplace.

Products are listed by an owner for sale, rental or both. Transactions record
another user's attempt to buy or rent a product and move from PENDING to
COMPLETED once the owner approves them.
"""

from decimal import Decimal

from django.contrib.auth.models import AbstractUser
from django.core.exceptions import ValidationError
from django.db import models
from django.utils.translation import gettext_lazy as _

from .validators import validate_date_range, validate_phone_number, validate_positive_price


class LiveManager(models.Manager):
    """
    Manager that hides soft-deleted rows.

    Installed as ``objects`` on every soft-deletable model so that queries
    never see ``deleted=True`` records unless they go through ``all_objects``.
    """

    def get_queryset(self):
        return super().get_queryset().filter(deleted=False)


class User(AbstractUser):
    """
    Custom User model extending Django's AbstractUser.

    Additional fields:
    - email: Required, unique email address (used to log in)
    - phone_number: Optional phone number with validation
    - address: Optional postal address
    - created_at: Account creation timestamp
    - updated_at: Last update timestamp
    """

    email = models.EmailField(
        _('email address'),
        unique=True,
        blank=False,
        null=False,
        error_messages={
            'unique': _('A user with that email already exists.'),
        },
        help_text=_('Required. Enter a valid email address.')
    )

    phone_number = models.CharField(
        _('phone number'),
        max_length=20,
        blank=True,
        default='',
        validators=[validate_phone_number],
        help_text=_('Optional. Enter phone number in international format.')
    )

    address = models.CharField(
        _('address'),
        max_length=300,
        blank=True,
        default='',
        help_text=_('Optional. Postal address.')
    )

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    class Meta:
        verbose_name = _('user')
        verbose_name_plural = _('users')
        ordering = ['-created_at']

    def __str__(self):
        return self.email or self.username

    def save(self, *args, **kwargs):
        # Normalize email to lowercase for case-insensitive uniqueness
        if self.email:
            self.email = self.email.lower()
        super().save(*args, **kwargs)


class Category(models.Model):
    """Tag attached to products, e.g. ELECTRONICS or FURNITURE."""

    name = models.CharField(_('name'), max_length=100, unique=True)
    created_at = models.DateTimeField(_('created at'), auto_now_add=True)

    class Meta:
        verbose_name = _('category')
        verbose_name_plural = _('categories')
        ordering = ['name']

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        self.name = self.name.strip().upper()
        super().save(*args, **kwargs)


class Product(models.Model):
    """
    Item offered by exactly one owner.

    Fields:
    - owner: Foreign key to User
    - name, description: Listing text
    - price_buy: Optional sale price
    - price_rent: Optional rental price, paired with rent_option
    - rent_option: Rental cadence (DAILY, WEEKLY, MONTHLY)
    - categories: Category tags
    - deleted: Soft-delete flag; deleted products are never transactable
    - created_at / updated_at: Timestamps
    """

    DAILY = 'DAILY'
    WEEKLY = 'WEEKLY'
    MONTHLY = 'MONTHLY'

    RENT_OPTION_CHOICES = [
        (DAILY, 'Daily'),
        (WEEKLY, 'Weekly'),
        (MONTHLY, 'Monthly'),
    ]

    # Length in days of one rental period for each cadence
    RENT_OPTION_DAYS = {
        DAILY: 1,
        WEEKLY: 7,
        MONTHLY: 30,
    }

    owner = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='products',
        help_text=_('User offering this product')
    )

    name = models.CharField(_('name'), max_length=200)

    description = models.TextField(_('description'))

    price_buy = models.DecimalField(
        _('sale price'),
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[validate_positive_price],
    )

    price_rent = models.DecimalField(
        _('rental price'),
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[validate_positive_price],
    )

    rent_option = models.CharField(
        _('rent option'),
        max_length=10,
        choices=RENT_OPTION_CHOICES,
        null=True,
        blank=True,
    )

    categories = models.ManyToManyField(
        Category,
        related_name='products',
        blank=True,
    )

    deleted = models.BooleanField(_('deleted'), default=False)

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    objects = LiveManager()
    all_objects = models.Manager()

    class Meta:
        verbose_name = _('product')
        verbose_name_plural = _('products')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['deleted'], name='product_deleted_idx'),
        ]

    def __str__(self):
        return self.name

    def clean(self):
        """
        Validate model fields.

        Ensures:
        - Name and description are not empty
        - A rental price comes with a rental cadence

        Raises:
            ValidationError: If validation fails
        """
        super().clean()

        if not self.name or not self.name.strip():
            raise ValidationError({'name': _('Name cannot be empty.')})

        if not self.description or not self.description.strip():
            raise ValidationError({'description': _('Description cannot be empty.')})

        if self.price_rent is not None and not self.rent_option:
            raise ValidationError({
                'rent_option': _('A rent option is required when a rental price is set.')
            })

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    def is_for_sale(self):
        return self.price_buy is not None

    def is_for_rent(self):
        return self.price_rent is not None

    def rental_periods(self, start_date, end_date):
        """
        Number of rental periods covered by the inclusive window.

        Partial periods count as a whole period. Returns 0 if the product
        is not offered for rent.
        """
        if not self.is_for_rent() or not self.rent_option:
            return 0
        days = (end_date - start_date).days + 1
        period = self.RENT_OPTION_DAYS[self.rent_option]
        return max(1, -(-days // period))

    def quote_rent(self, start_date, end_date):
        """Listed rental price for the window; informational only."""
        periods = self.rental_periods(start_date, end_date)
        if not periods:
            return None
        return (self.price_rent * periods).quantize(Decimal('0.01'))


class Transaction(models.Model):
    """
    One user's attempt to buy or rent one product.

    Fields:
    - product: Foreign key to Product
    - user: Acting user (buyer or renter); never the product owner
    - type: BUY or RENT
    - status: PENDING on creation, COMPLETED once the owner approves
    - price: Agreed amount supplied by the acting user
    - start_date / end_date: Inclusive rental window (RENT only)
    - deleted: Soft-delete flag
    - created_at / updated_at: Timestamps
    """

    BUY = 'BUY'
    RENT = 'RENT'

    TYPE_CHOICES = [
        (BUY, 'Buy'),
        (RENT, 'Rent'),
    ]

    PENDING = 'PENDING'
    COMPLETED = 'COMPLETED'

    STATUS_CHOICES = [
        (PENDING, 'Pending'),
        (COMPLETED, 'Completed'),
    ]

    # Valid state transitions; COMPLETED is terminal
    VALID_TRANSITIONS = {
        PENDING: [COMPLETED],
        COMPLETED: [],
    }

    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name='transactions',
        help_text=_('Product being bought or rented')
    )

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='transactions',
        help_text=_('User buying or renting the product')
    )

    type = models.CharField(_('type'), max_length=10, choices=TYPE_CHOICES)

    status = models.CharField(
        _('status'),
        max_length=10,
        choices=STATUS_CHOICES,
        default=PENDING,
    )

    price = models.DecimalField(_('price'), max_digits=10, decimal_places=2)

    start_date = models.DateField(_('start date'), null=True, blank=True)
    end_date = models.DateField(_('end date'), null=True, blank=True)

    deleted = models.BooleanField(_('deleted'), default=False)

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)
    updated_at = models.DateTimeField(_('updated at'), auto_now=True)

    objects = LiveManager()
    all_objects = models.Manager()

    class Meta:
        verbose_name = _('transaction')
        verbose_name_plural = _('transactions')
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['product', 'type', 'status'], name='txn_product_type_status_idx'),
            models.Index(fields=['status'], name='txn_status_idx'),
        ]

    def __str__(self):
        return f"{self.type} {self.product_id} by {self.user_id} ({self.status})"

    def clean(self):
        """
        Validate model fields.

        Ensures:
        - The acting user is not the product owner
        - Rentals carry an ordered date window
        - Price is not negative

        Raises:
            ValidationError: If validation fails
        """
        super().clean()

        if self.product_id and self.user_id and self.product.owner_id == self.user_id:
            raise ValidationError({
                'user': _('You cannot transact on your own product.')
            })

        if self.type == self.RENT:
            validate_date_range(self.start_date, self.end_date)

        if self.price is not None and self.price < 0:
            raise ValidationError({'price': _('Price cannot be negative.')})

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    def can_transition_to(self, new_status):
        """
        Check if transition to new status is valid.

        Re-applying the current status is allowed.
        """
        current_status = self.status
        valid_next_statuses = self.VALID_TRANSITIONS.get(current_status, [])
        return new_status in valid_next_statuses or new_status == current_status

    @property
    def rental_days(self):
        if self.start_date is None or self.end_date is None:
            return None
        return (self.end_date - self.start_date).days + 1
