"""
API views for the Kinbay marketplace.

Views authenticate the caller, validate the request shape with a serializer
and delegate to ``marketplace.services``. Service errors are turned into
responses here and logged together with the caller and client IP.
"""

import logging

from django.db import IntegrityError
from rest_framework import generics, status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.views import TokenObtainPairView

from . import services
from .exceptions import Forbidden, MarketplaceError
from .serializers import (
    AvailabilityQuerySerializer,
    AvailabilitySerializer,
    CategorySerializer,
    EmailTokenObtainPairSerializer,
    ProductSerializer,
    ProductWriteSerializer,
    TransactionCreateSerializer,
    TransactionSerializer,
    UserProfileSerializer,
    UserProfileUpdateSerializer,
    UserRegistrationSerializer,
    UserTransactionsSerializer,
)

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """
    Get client IP address from request.
    Handles proxy headers for accurate IP detection.
    """
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def rejected(request, exc, action):
    """Log a rejected operation and build its error response."""
    user_id = request.user.id if request.user and request.user.is_authenticated else None
    logger.warning(
        f"{action} rejected ({exc.code}): {exc.message} "
        f"User ID: {user_id}, IP: {get_client_ip(request)}"
    )
    return Response(exc.as_response_data(), status=exc.status_code)


class PublicReadMixin:
    """GET is open to everyone; other methods need an authenticated user."""

    def get_permissions(self):
        if self.request.method == 'GET':
            return [AllowAny()]
        return [IsAuthenticated()]


# ============================================================================
# Authentication
# ============================================================================

class EmailTokenObtainPairView(TokenObtainPairView):
    """
    Custom view to use email-based authentication instead of username.
    """
    serializer_class = EmailTokenObtainPairSerializer


class UserRegistrationView(generics.CreateAPIView):
    """
    API endpoint for user registration.

    Accepts POST requests with user registration data.
    Returns created user data (excluding password) on success.
    Handles concurrent registration attempts with database-level uniqueness.
    """
    serializer_class = UserRegistrationSerializer
    permission_classes = [AllowAny]

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            self.perform_create(serializer)
        except IntegrityError:
            # Concurrent registration with the same email
            return Response(
                {'email': ['A user with that email already exists.']},
                status=status.HTTP_400_BAD_REQUEST
            )

        logger.info(
            f"User registered. User ID: {serializer.instance.id}, IP: {get_client_ip(request)}"
        )
        return Response(serializer.data, status=status.HTTP_201_CREATED)


class UserProfileView(APIView):
    """
    GET   /api/auth/me/ -> the caller's profile
    PATCH /api/auth/me/ -> update first_name, last_name, address or phone_number

    Other fields in the PATCH body (email, password, is_staff, ...) are ignored.

    Error responses:
    - 400: Invalid data (validation errors)
    - 401: Missing, invalid, or expired JWT token
    """

    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        return Response(UserProfileSerializer(request.user).data)

    def patch(self, request, *args, **kwargs):
        serializer = UserProfileUpdateSerializer(request.user, data=request.data, partial=True)
        if not serializer.is_valid():
            logger.warning(
                f"Profile update validation failed. "
                f"User ID: {request.user.id}, Errors: {serializer.errors}"
            )
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        user = serializer.save()
        logger.info(
            f"Profile updated. User ID: {user.id}, "
            f"Fields: {sorted(serializer.validated_data)}, IP: {get_client_ip(request)}"
        )
        return Response(UserProfileSerializer(user).data)


# ============================================================================
# Catalog
# ============================================================================

class ProductListCreateView(PublicReadMixin, APIView):
    """
    GET  /api/products/  -> products currently offered (no pending or completed sale)
    POST /api/products/  -> create a product owned by the caller

    Request body for POST: {
        "name": "Mountain Bike",
        "description": "21-speed, perfect for trails.",
        "price_buy": "750.00",
        "price_rent": "40.00",
        "rent_option": "DAILY",
        "category_ids": [4]
    }
    """

    def get(self, request, *args, **kwargs):
        products = services.list_available_products()
        return Response(ProductSerializer(products, many=True).data)

    def post(self, request, *args, **kwargs):
        serializer = ProductWriteSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            product = services.create_product(request.user.id, **serializer.validated_data)
        except MarketplaceError as e:
            return rejected(request, e, 'Product creation')

        logger.info(
            f"Product created. Product ID: {product.id}, "
            f"Owner ID: {request.user.id}, IP: {get_client_ip(request)}"
        )
        return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)


class MyProductsView(APIView):
    """GET /api/products/mine/ -> the caller's live products."""

    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        products = services.list_products_by_owner(request.user.id)
        return Response(ProductSerializer(products, many=True).data)


class ProductDetailView(PublicReadMixin, APIView):
    """
    GET    /api/products/<id>/ -> product details
    PATCH  /api/products/<id>/ -> partial update (owner only)
    DELETE /api/products/<id>/ -> soft delete (owner only)
    """

    def get(self, request, pk, *args, **kwargs):
        try:
            product = services.get_product(pk)
        except MarketplaceError as e:
            return Response(e.as_response_data(), status=e.status_code)
        return Response(ProductSerializer(product).data)

    def patch(self, request, pk, *args, **kwargs):
        try:
            product = services.get_product(pk)
            if product.owner_id != request.user.id:
                raise Forbidden('Only the product owner can modify this product.')

            serializer = ProductWriteSerializer(product, data=request.data, partial=True)
            if not serializer.is_valid():
                return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

            product = services.update_product(pk, request.user.id, **serializer.validated_data)
        except MarketplaceError as e:
            return rejected(request, e, f'Update of product {pk}')

        logger.info(
            f"Product updated. Product ID: {pk}, Fields: {sorted(serializer.validated_data)}, "
            f"User ID: {request.user.id}, IP: {get_client_ip(request)}"
        )
        return Response(ProductSerializer(product).data)

    def delete(self, request, pk, *args, **kwargs):
        try:
            services.delete_product(pk, request.user.id)
        except MarketplaceError as e:
            return rejected(request, e, f'Deletion of product {pk}')

        logger.info(
            f"Product soft-deleted. Product ID: {pk}, "
            f"User ID: {request.user.id}, IP: {get_client_ip(request)}"
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


class ProductAvailabilityView(APIView):
    """
    GET /api/products/<id>/availability/?start_date=YYYY-MM-DD&end_date=YYYY-MM-DD

    Public pre-check used before requesting a purchase or rental. Dates are
    optional; without them only the product's existence and sale state are
    checked. With an open window on a rentable product the response
    also carries the listed rental price for it as "quote".

    Response (200): {
        "available": true,
        "reason": "Product is available",
        "quote": "36.00"
    }
    or {
        "available": false,
        "reason": "Product is already rented during the selected time period",
        "conflicting_rentals": [{"id": 3, "start_date": "...", "end_date": "...", ...}]
    }
    """

    permission_classes = [AllowAny]

    def get(self, request, pk, *args, **kwargs):
        query = AvailabilityQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return Response(query.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            verdict = services.check_availability(
                pk,
                query.validated_data.get('start_date'),
                query.validated_data.get('end_date'),
            )
        except MarketplaceError as e:
            return rejected(request, e, f'Availability check of product {pk}')
        return Response(AvailabilitySerializer(verdict).data)


class CategoryListCreateView(PublicReadMixin, APIView):
    """
    GET  /api/categories/ -> all categories
    POST /api/categories/ -> create a category {"name": "TOOLS"}
    """

    def get(self, request, *args, **kwargs):
        return Response(CategorySerializer(services.list_categories(), many=True).data)

    def post(self, request, *args, **kwargs):
        serializer = CategorySerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            category = services.create_category(serializer.validated_data['name'])
        except MarketplaceError as e:
            return rejected(request, e, 'Category creation')

        logger.info(
            f"Category created. Category: {category.name}, "
            f"User ID: {request.user.id}, IP: {get_client_ip(request)}"
        )
        return Response(CategorySerializer(category).data, status=status.HTTP_201_CREATED)


# ============================================================================
# Transactions
# ============================================================================

class TransactionCreateView(APIView):
    """
    API endpoint for requesting a purchase or a rental.

    POST /api/transactions/
    Headers: Authorization: Bearer <access_token>
    Request body (buy):  {"product": 1, "type": "BUY", "price": "100.00"}
    Request body (rent): {"product": 1, "type": "RENT", "price": "30.00",
                          "start_date": "2024-01-01", "end_date": "2024-01-05"}

    Success response (201): the PENDING transaction with product and user details.

    Error responses:
    - 400: Invalid data (bad type or price, rental without dates)
    - 401: Missing, invalid, or expired JWT token
    - 403: Caller owns the product
    - 404: Product not found or deleted
    - 409: Product sold, or rental window overlaps an existing rental
    """

    permission_classes = [IsAuthenticated]

    def post(self, request, *args, **kwargs):
        serializer = TransactionCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        try:
            txn = services.create_transaction(
                data['product'],
                request.user.id,
                data['type'],
                data['price'],
                data.get('start_date'),
                data.get('end_date'),
            )
        except MarketplaceError as e:
            return rejected(request, e, f"{data['type']} request on product {data['product']}")

        logger.info(
            f"Transaction created. Transaction ID: {txn.id}, Type: {txn.type}, "
            f"Product ID: {txn.product_id}, User ID: {request.user.id}, "
            f"Window: {txn.start_date}..{txn.end_date}, IP: {get_client_ip(request)}"
        )
        return Response(TransactionSerializer(txn).data, status=status.HTTP_201_CREATED)


class TransactionDetailView(APIView):
    """GET /api/transactions/<id>/ -> visible to the acting user and the product owner."""

    permission_classes = [IsAuthenticated]

    def get(self, request, pk, *args, **kwargs):
        try:
            txn = services.get_transaction(pk, request.user.id)
        except MarketplaceError as e:
            return rejected(request, e, f'View of transaction {pk}')
        return Response(TransactionSerializer(txn).data)


class TransactionCompleteView(APIView):
    """
    API endpoint for approving a transaction.

    POST /api/transactions/<id>/complete/
    Headers: Authorization: Bearer <access_token>

    Only the owner of the transaction's product may complete it; the buyer
    or renter cannot approve their own request.

    Error responses:
    - 401: Missing, invalid, or expired JWT token
    - 403: Caller is not the product owner
    - 404: Transaction not found
    - 409: Product already sold to someone else
    """

    permission_classes = [IsAuthenticated]

    def post(self, request, pk, *args, **kwargs):
        try:
            txn = services.complete_transaction(pk, request.user.id)
        except MarketplaceError as e:
            return rejected(request, e, f'Completion of transaction {pk}')

        logger.info(
            f"Transaction completed. Transaction ID: {txn.id}, Type: {txn.type}, "
            f"Product ID: {txn.product_id}, Owner ID: {request.user.id}, "
            f"IP: {get_client_ip(request)}"
        )
        return Response(TransactionSerializer(txn).data)


class UserTransactionsView(APIView):
    """
    GET /api/transactions/mine/

    Response (200): {"bought": [...], "sold": [...], "borrowed": [...], "lent": [...]}
    """

    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        partitions = services.list_user_transactions(request.user.id)
        return Response(UserTransactionsSerializer(partitions).data)


class PendingTransactionsView(APIView):
    """GET /api/transactions/pending/ -> approval queue for the caller's products."""

    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        pending = services.list_pending_for_owner(request.user.id)
        return Response(TransactionSerializer(pending, many=True).data)
