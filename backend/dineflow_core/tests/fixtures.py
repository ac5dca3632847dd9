"""
Shared test fixtures for all backend tests.

This module provides reusable pytest fixtures for common test objects
like restaurants, staff, menu items and tables.
"""
import pytest
from decimal import Decimal

from django.contrib.auth import get_user_model

from tenant.models import Tenant
from menu.models import MenuItem, MenuItemVariant, ModifierGroup, Modifier
from tables.models import Table


# ============================================================================
# TENANT FIXTURES
# ============================================================================

@pytest.fixture
def tenant_a(db):
    """Create test restaurant A (gst 5%, service 10% from the default settings)"""
    return Tenant.objects.create(
        name='Spice Route',
        slug='spice-route',
        is_active=True
    )


@pytest.fixture
def tenant_b(db):
    """Create test restaurant B"""
    return Tenant.objects.create(
        name='Curry Leaf',
        slug='curry-leaf',
        is_active=True
    )


# ============================================================================
# STAFF FIXTURES
# ============================================================================

@pytest.fixture
def waiter(db):
    """A waiter who places orders"""
    return get_user_model().objects.create_user(
        username='ravi',
        password='test-password',
        first_name='Ravi',
        last_name='Kumar',
    )


@pytest.fixture
def second_waiter(db):
    return get_user_model().objects.create_user(
        username='meena',
        password='test-password',
        first_name='Meena',
    )


# ============================================================================
# MENU FIXTURES
# ============================================================================

@pytest.fixture
def biryani(tenant_a):
    """Menu item priced 200.00"""
    return MenuItem.objects.create(
        tenant=tenant_a,
        name='Chicken Biryani',
        price=Decimal('200.00'),
    )


@pytest.fixture
def lassi(tenant_a):
    """Menu item priced 100.00"""
    return MenuItem.objects.create(
        tenant=tenant_a,
        name='Mango Lassi',
        price=Decimal('100.00'),
    )


@pytest.fixture
def pizza(tenant_a):
    """Menu item with Half/Full variants whose prices replace the base price"""
    item = MenuItem.objects.create(
        tenant=tenant_a,
        name='Paneer Pizza',
        price=Decimal('250.00'),
    )
    MenuItemVariant.objects.create(
        tenant=tenant_a, menu_item=item, name='Half', price=Decimal('180.00')
    )
    MenuItemVariant.objects.create(
        tenant=tenant_a, menu_item=item, name='Full', price=Decimal('320.00')
    )
    return item


@pytest.fixture
def toppings(tenant_a):
    """Modifier group 'Toppings' with Extra Cheese (40) and Olives (25)"""
    group = ModifierGroup.objects.create(tenant=tenant_a, name='Toppings')
    cheese = Modifier.objects.create(
        tenant=tenant_a, group=group, name='Extra Cheese', price=Decimal('40.00')
    )
    olives = Modifier.objects.create(
        tenant=tenant_a, group=group, name='Olives', price=Decimal('25.00')
    )
    return {'group': group, 'cheese': cheese, 'olives': olives}


@pytest.fixture
def menu_item_tenant_b(tenant_b):
    return MenuItem.objects.create(
        tenant=tenant_b,
        name='Masala Dosa',
        price=Decimal('120.00'),
    )


# ============================================================================
# TABLE FIXTURES
# ============================================================================

@pytest.fixture
def table_t1(tenant_a):
    return Table.objects.create(
        tenant=tenant_a,
        table_number='T1',
        capacity=4,
        floor_section='Ground',
    )


@pytest.fixture
def table_t2(tenant_a):
    return Table.objects.create(
        tenant=tenant_a,
        table_number='T2',
        capacity=2,
    )


# ============================================================================
# HELPERS
# ============================================================================

def line(menu_item, quantity=1, variant=None, modifiers=(), notes=""):
    """Build a cart line for OrderService.place_order / append_items."""
    return {
        'menu_item_id': str(menu_item.id),
        'quantity': quantity,
        'variant_id': str(variant.id) if variant else None,
        'modifier_ids': [str(m.id) for m in modifiers],
        'notes': notes,
    }
