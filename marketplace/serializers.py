"""
Serializers for the Kinbay API.

Input serializers only check the shape of a request (types, formats,
required fields). Ownership and availability rules live in
``marketplace.services`` so that they are applied in one place and in the
documented order.
"""

import re

from django.contrib.auth import get_user_model
from django.contrib.auth.hashers import make_password
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils.dateparse import parse_date, parse_datetime
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from .models import Category, Product, Transaction

User = get_user_model()


class EmailTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    Custom serializer to use email instead of username for authentication.
    """
    username_field = 'email'

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # Remove username field and ensure email field exists
        if 'username' in self.fields:
            del self.fields['username']
        if 'email' not in self.fields:
            self.fields['email'] = serializers.EmailField()


class IsoDateField(serializers.DateField):
    """
    Date field accepting ISO-8601 dates or datetimes.

    ``2024-01-10`` and ``2024-01-10T00:00:00Z`` both become 2024-01-10.
    """

    def to_internal_value(self, value):
        if isinstance(value, str):
            value = value.strip()
            parsed = None
            try:
                parsed = parse_date(value)
                if parsed is None:
                    parsed_datetime = parse_datetime(value)
                    if parsed_datetime is not None:
                        parsed = parsed_datetime.date()
            except ValueError:
                parsed = None
            if parsed is None:
                self.fail('invalid', format='YYYY-MM-DD')
            return parsed
        return super().to_internal_value(value)


# ============================================================================
# Users
# ============================================================================

class UserRegistrationSerializer(serializers.ModelSerializer):
    """
    Serializer for user registration with validation.

    Fields:
    - email: Required, unique, valid email format
    - password: Required, must meet strength requirements
    - confirm_password: Required, must match password
    - first_name, last_name, address: Optional
    - phone_number: Optional, must be valid format if provided
    """

    password = serializers.CharField(
        write_only=True,
        required=True,
        style={'input_type': 'password'}
    )
    confirm_password = serializers.CharField(
        write_only=True,
        required=True,
        style={'input_type': 'password'}
    )

    class Meta:
        model = User
        fields = ['id', 'email', 'password', 'confirm_password', 'first_name',
                  'last_name', 'address', 'phone_number', 'created_at']
        read_only_fields = ['id', 'created_at']
        extra_kwargs = {
            'email': {'required': True},
        }

    def validate_email(self, value):
        value = value.strip().lower()

        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError(
                "A user with that email already exists."
            )

        return value

    def validate_password(self, value):
        try:
            validate_password(value)
        except DjangoValidationError as e:
            raise serializers.ValidationError(list(e.messages))

        return value

    def validate_phone_number(self, value):
        if not value:
            return value

        cleaned = re.sub(r'[\s\-\(\)]', '', value)

        if not re.match(r'^\+?\d{10,15}$', cleaned):
            raise serializers.ValidationError(
                "Phone number must be between 10-15 digits and may start with '+'."
            )

        return value

    def validate(self, attrs):
        if attrs.get('password') != attrs.get('confirm_password'):
            raise serializers.ValidationError({
                'confirm_password': 'Password confirmation does not match.'
            })

        return attrs

    def create(self, validated_data):
        """
        Create user with hashed password.

        The username is the email address; it is only kept because
        AbstractUser requires one.
        """
        validated_data.pop('confirm_password', None)
        validated_data['password'] = make_password(validated_data.pop('password'))
        validated_data['username'] = validated_data['email'][:150]

        with transaction.atomic():
            user = User.objects.create(**validated_data)

        return user


class UserProfileSerializer(serializers.ModelSerializer):
    """The caller's own account, without password or permission fields."""

    class Meta:
        model = User
        fields = ['id', 'email', 'first_name', 'last_name', 'address',
                  'phone_number', 'created_at', 'updated_at']
        read_only_fields = fields


class UserProfileUpdateSerializer(serializers.ModelSerializer):
    """
    Partial update of the caller's profile.

    Only the contact fields can change here. Email, password and permission
    flags are not part of the serializer, so they are ignored if sent.
    The model's phone number validator runs on phone_number.
    """

    class Meta:
        model = User
        fields = ['first_name', 'last_name', 'address', 'phone_number']
        extra_kwargs = {
            'first_name': {'required': False},
            'last_name': {'required': False},
            'address': {'required': False},
            'phone_number': {'required': False},
        }

    def validate_first_name(self, value):
        return value.strip()

    def validate_last_name(self, value):
        return value.strip()


class UserSummarySerializer(serializers.ModelSerializer):
    """Public details of a user shown next to products and transactions."""

    class Meta:
        model = User
        fields = ['id', 'email', 'first_name', 'last_name']
        read_only_fields = fields


# ============================================================================
# Catalog
# ============================================================================

class CategorySerializer(serializers.ModelSerializer):

    class Meta:
        model = Category
        fields = ['id', 'name']
        read_only_fields = ['id']
        # Uniqueness is checked by services.create_category() after normalizing
        extra_kwargs = {
            'name': {'validators': []},
        }

    def validate_name(self, value):
        if not value or not value.strip():
            raise serializers.ValidationError("Category name cannot be empty.")
        return value.strip().upper()


class ProductSerializer(serializers.ModelSerializer):
    """
    Read serializer for products with nested owner and categories.

    Views load products with select_related('owner') and
    prefetch_related('categories').
    """

    owner = UserSummarySerializer(read_only=True)
    categories = CategorySerializer(many=True, read_only=True)
    for_sale = serializers.BooleanField(source='is_for_sale', read_only=True)
    for_rent = serializers.BooleanField(source='is_for_rent', read_only=True)

    class Meta:
        model = Product
        fields = [
            'id',
            'name',
            'description',
            'price_buy',
            'price_rent',
            'rent_option',
            'for_sale',
            'for_rent',
            'owner_id',
            'owner',
            'categories',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class ProductWriteSerializer(serializers.Serializer):
    """
    Input for creating (all listing fields) or updating (partial) a product.

    Fields:
    - name, description: Required on create, non-empty
    - price_buy, price_rent: Optional, greater than 0
    - rent_option: Required whenever price_rent is set
    - category_ids: Optional list of category ids
    """

    name = serializers.CharField(max_length=200)
    description = serializers.CharField()
    price_buy = serializers.DecimalField(
        max_digits=10, decimal_places=2, required=False, allow_null=True
    )
    price_rent = serializers.DecimalField(
        max_digits=10, decimal_places=2, required=False, allow_null=True
    )
    rent_option = serializers.ChoiceField(
        choices=Product.RENT_OPTION_CHOICES, required=False, allow_null=True
    )
    category_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1), required=False
    )

    def validate_name(self, value):
        if not value.strip():
            raise serializers.ValidationError("Name cannot be empty.")
        return value.strip()

    def validate_description(self, value):
        if not value.strip():
            raise serializers.ValidationError("Description cannot be empty.")
        return value.strip()

    def validate_price_buy(self, value):
        if value is not None and value <= 0:
            raise serializers.ValidationError("Price must be greater than 0.")
        return value

    def validate_price_rent(self, value):
        if value is not None and value <= 0:
            raise serializers.ValidationError("Price must be greater than 0.")
        return value

    def validate(self, attrs):
        """
        A rental price needs a cadence.

        On partial updates the current product values fill in whatever the
        request leaves out.
        """
        instance = self.instance
        price_rent = attrs.get('price_rent', getattr(instance, 'price_rent', None))
        rent_option = attrs.get('rent_option', getattr(instance, 'rent_option', None))

        if price_rent is not None and not rent_option:
            raise serializers.ValidationError({
                'rent_option': 'A rent option is required when a rental price is set.'
            })

        return attrs


# ============================================================================
# Transactions
# ============================================================================

class TransactionProductSerializer(serializers.ModelSerializer):
    """Product details embedded in a transaction."""

    owner = UserSummarySerializer(read_only=True)

    class Meta:
        model = Product
        fields = ['id', 'name', 'description', 'price_buy', 'price_rent',
                  'rent_option', 'owner']
        read_only_fields = fields


class TransactionSerializer(serializers.ModelSerializer):
    """
    Read serializer for transactions with product, owner and acting user.

    Expects select_related('product', 'product__owner', 'user').
    """

    product = TransactionProductSerializer(read_only=True)
    user = UserSummarySerializer(read_only=True)
    rental_days = serializers.IntegerField(read_only=True)

    class Meta:
        model = Transaction
        fields = [
            'id',
            'product_id',
            'product',
            'user_id',
            'user',
            'type',
            'status',
            'price',
            'start_date',
            'end_date',
            'rental_days',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class TransactionCreateSerializer(serializers.Serializer):
    """
    Input for buy and rent requests.

    Dates are optional here: whether a rental has them is checked by the
    service after the ownership and sale checks.
    """

    product = serializers.IntegerField(min_value=1)
    type = serializers.ChoiceField(choices=Transaction.TYPE_CHOICES)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    start_date = IsoDateField(required=False, allow_null=True)
    end_date = IsoDateField(required=False, allow_null=True)


class UserTransactionsSerializer(serializers.Serializer):
    bought = TransactionSerializer(many=True)
    sold = TransactionSerializer(many=True)
    borrowed = TransactionSerializer(many=True)
    lent = TransactionSerializer(many=True)


# ============================================================================
# Availability
# ============================================================================

class AvailabilityQuerySerializer(serializers.Serializer):
    """
    Query parameters of the availability check.

    Both dates or neither; when given, start_date must not be after end_date.
    """

    start_date = IsoDateField(required=False, allow_null=True)
    end_date = IsoDateField(required=False, allow_null=True)

    def validate(self, attrs):
        start_date = attrs.get('start_date')
        end_date = attrs.get('end_date')

        if (start_date is None) != (end_date is None):
            raise serializers.ValidationError(
                'Provide both start_date and end_date, or neither.'
            )

        if start_date is not None and start_date > end_date:
            raise serializers.ValidationError(
                'start_date must be on or before end_date.'
            )

        return attrs


class ConflictingRentalSerializer(serializers.ModelSerializer):
    user = UserSummarySerializer(read_only=True)

    class Meta:
        model = Transaction
        fields = ['id', 'start_date', 'end_date', 'status', 'user']
        read_only_fields = fields


class AvailabilitySerializer(serializers.Serializer):
    """Renders an ``availability.Availability`` verdict."""

    available = serializers.BooleanField()
    reason = serializers.CharField()
    conflicting_rentals = ConflictingRentalSerializer(
        source='conflicts', many=True, required=False
    )
    quote = serializers.DecimalField(
        max_digits=12, decimal_places=2, required=False, allow_null=True
    )

    def to_representation(self, instance):
        data = super().to_representation(instance)
        if not data.get('conflicting_rentals'):
            data.pop('conflicting_rentals', None)
        if data.get('quote') is None:
            data.pop('quote', None)
        return data
