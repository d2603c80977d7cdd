"""
Django admin configuration for marketplace models.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _

from .models import Category, Product, Transaction, User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    Custom admin interface for User model.

    Extends Django's UserAdmin to include custom fields.
    """

    list_display = [
        'email',
        'username',
        'first_name',
        'last_name',
        'is_staff',
        'is_active',
        'created_at',
    ]

    list_filter = [
        'is_staff',
        'is_superuser',
        'is_active',
        'created_at',
    ]

    search_fields = [
        'email',
        'username',
        'first_name',
        'last_name',
    ]

    ordering = ['-created_at']

    fieldsets = (
        (None, {
            'fields': ('username', 'password')
        }),
        (_('Personal Info'), {
            'fields': (
                'first_name',
                'last_name',
                'email',
                'phone_number',
                'address',
            )
        }),
        (_('Permissions'), {
            'fields': (
                'is_active',
                'is_staff',
                'is_superuser',
                'groups',
                'user_permissions',
            ),
            'classes': ('collapse',),
        }),
        (_('Important Dates'), {
            'fields': ('last_login', 'date_joined', 'created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': (
                'username',
                'email',
                'password1',
                'password2',
            ),
        }),
    )

    readonly_fields = ['created_at', 'updated_at', 'last_login', 'date_joined']

    list_per_page = 25

    def get_readonly_fields(self, request, obj=None):
        if obj:  # Editing an existing object
            return self.readonly_fields
        return []


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'created_at']
    search_fields = ['name']
    ordering = ['name']


class TransactionInline(admin.TabularInline):
    """Read-only history of a product's transactions."""
    model = Transaction
    extra = 0
    fields = ['user', 'type', 'status', 'price', 'start_date', 'end_date', 'deleted', 'created_at']
    readonly_fields = fields
    can_delete = False
    ordering = ['-created_at']


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    """
    Admin interface for Product model.

    Lists soft-deleted products too so they can be inspected or restored.
    """

    list_display = [
        'name',
        'owner',
        'price_buy',
        'price_rent',
        'rent_option',
        'deleted',
        'created_at',
    ]

    list_filter = [
        'deleted',
        'rent_option',
        'categories',
        'created_at',
    ]

    search_fields = [
        'name',
        'description',
        'owner__email',
    ]

    readonly_fields = ['created_at', 'updated_at']

    ordering = ['-created_at']

    date_hierarchy = 'created_at'

    list_per_page = 25

    filter_horizontal = ['categories']

    inlines = [TransactionInline]

    fieldsets = (
        (None, {
            'fields': ('owner', 'name', 'description', 'categories')
        }),
        (_('Pricing'), {
            'fields': ('price_buy', 'price_rent', 'rent_option')
        }),
        (_('State'), {
            'fields': ('deleted', 'created_at', 'updated_at'),
        }),
    )

    def get_queryset(self, request):
        return Product.all_objects.select_related('owner')


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    """Admin interface for Transaction model."""

    list_display = [
        'id',
        'product',
        'user',
        'type',
        'status',
        'price',
        'start_date',
        'end_date',
        'deleted',
        'created_at',
    ]

    list_filter = [
        'type',
        'status',
        'deleted',
        'created_at',
    ]

    search_fields = [
        'product__name',
        'user__email',
        'product__owner__email',
    ]

    readonly_fields = ['created_at', 'updated_at']

    ordering = ['-created_at']

    date_hierarchy = 'created_at'

    list_per_page = 25

    def get_queryset(self, request):
        return Transaction.all_objects.select_related('product', 'user')
