"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from capshop.catalog.models import RawMaterial, Item, ItemMaterial, Extra
from capshop.purchasing.models import OrderMaterial, OrderMaterialGroup, OrderDesign
from capshop.sales.models import Sale, SaleItem
from collections import Counter
from decimal import Decimal
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', is_staff=False, is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser
        )

    @staticmethod
    def create_raw_material(name=None, quantity=None, width=None, height=None, price=None):
        """Create a test raw material"""
        if not name:
            name = f'Fabric_{TestDataFactory.random_string(6)}'
        return RawMaterial.objects.create(
            name=name,
            width=width if width is not None else Decimal('1.50'),
            height=height if height is not None else Decimal('1.00'),
            quantity=quantity if quantity is not None else Decimal('10.00'),
            price=price if price is not None else Decimal('120.00'),
            supplier='Telas del Centro',
        )

    @staticmethod
    def create_item(name=None, category='sencillo', quantity=5, price=None, materials=None):
        """Create a test item, optionally linked to raw materials"""
        if not name:
            name = f'Gorro_{TestDataFactory.random_string(6)}'
        item = Item.objects.create(
            name=name,
            category=category,
            quantity=quantity,
            price=price if price is not None else Decimal('150.00'),
        )
        for material in materials or []:
            ItemMaterial.objects.create(item=item, raw_material=material)
        return item

    @staticmethod
    def create_extra(name=None, price=None):
        """Create a test extra"""
        if not name:
            name = f'Extra_{TestDataFactory.random_string(6)}'
        return Extra.objects.create(name=name, price=price if price is not None else Decimal('25.00'))

    @staticmethod
    def create_order(user=None, status='ordered', groups=None, tracking_number='', carrier='', distributor=None):
        """
        Create a test material order

        groups: list of (quantity, [raw_material, ...]) tuples
        """
        order = OrderMaterial.objects.create(
            distributor=distributor or f'Distribuidora_{TestDataFactory.random_string(6)}',
            status=status,
            tracking_number=tracking_number,
            carrier=carrier,
            created_by=user,
        )
        for quantity, materials in groups or []:
            group = OrderMaterialGroup.objects.create(order=order, quantity=quantity)
            for material in materials:
                OrderDesign.objects.create(
                    group=group,
                    raw_material=material,
                    height=Decimal('1.00'),
                    width=Decimal('1.50'),
                )
        return order

    @staticmethod
    def create_sale(user=None, items=None, status='pending', name=None, total_amount=None):
        """
        Create a test sale with lines, without touching stock

        items: list of Item instances, one per unit sold
        """
        sale = Sale.objects.create(
            name=name or f'Cliente_{TestDataFactory.random_string(6)}',
            status=status,
            social_media_platform='instagram',
            social_media_username=f'@{TestDataFactory.random_string(8).lower()}',
            shipping_type='local',
            local_shipping_option='meeting-point',
            total_amount=total_amount if total_amount is not None else Decimal('300.00'),
            created_by=user,
        )
        for item_id, units in Counter(item.id for item in items or []).items():
            SaleItem.objects.create(sale=sale, item_id=item_id, quantity=units)
        return sale

    @staticmethod
    def sale_payload(items, **overrides):
        """Request body for creating a sale through the API"""
        data = {
            'name': 'Dra. Laura Méndez',
            'social_media_platform': 'instagram',
            'social_media_username': '@dralaura',
            'shipping_type': 'nacional',
            'national_shipping_carrier': 'estafeta',
            'total_amount': '300.00',
            'items': items,
        }
        data.update(overrides)
        return data


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
