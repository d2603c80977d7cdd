"""
URL configuration for the Kinbay project.

All API endpoints live under /api/. Literal segments such as ``mine/`` and
``pending/`` sit next to the ``<int:pk>`` routes of the same resource.
"""
from django.contrib import admin
from django.urls import path
from rest_framework_simplejwt.views import TokenBlacklistView, TokenRefreshView

from marketplace.views import (
    CategoryListCreateView,
    EmailTokenObtainPairView,
    MyProductsView,
    PendingTransactionsView,
    ProductAvailabilityView,
    ProductDetailView,
    ProductListCreateView,
    TransactionCompleteView,
    TransactionCreateView,
    TransactionDetailView,
    UserProfileView,
    UserRegistrationView,
    UserTransactionsView,
)


urlpatterns = [
    path('admin/', admin.site.urls),

    # Authentication endpoints
    path('api/auth/register/', UserRegistrationView.as_view(), name='user_register'),
    path('api/auth/token/', EmailTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/auth/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('api/auth/logout/', TokenBlacklistView.as_view(), name='user_logout'),
    path('api/auth/me/', UserProfileView.as_view(), name='user_profile'),

    # Catalog endpoints
    path('api/products/', ProductListCreateView.as_view(), name='product_list'),
    path('api/products/mine/', MyProductsView.as_view(), name='product_mine'),
    path('api/products/<int:pk>/', ProductDetailView.as_view(), name='product_detail'),
    path('api/products/<int:pk>/availability/', ProductAvailabilityView.as_view(),
         name='product_availability'),
    path('api/categories/', CategoryListCreateView.as_view(), name='category_list'),

    # Transaction endpoints
    path('api/transactions/', TransactionCreateView.as_view(), name='transaction_create'),
    path('api/transactions/mine/', UserTransactionsView.as_view(), name='transaction_mine'),
    path('api/transactions/pending/', PendingTransactionsView.as_view(),
         name='transaction_pending'),
    path('api/transactions/<int:pk>/', TransactionDetailView.as_view(), name='transaction_detail'),
    path('api/transactions/<int:pk>/complete/', TransactionCompleteView.as_view(),
         name='transaction_complete'),
]
