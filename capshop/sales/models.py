from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from decimal import Decimal
from capshop.catalog.models import Item
from capshop.core.models import User


class Sale(models.Model):
    """Customer sale"""
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('shipped', 'Shipped'),
        ('delivered', 'Delivered'),
    ]
    PLATFORM_CHOICES = [
        ('facebook', 'Facebook'),
        ('instagram', 'Instagram'),
        ('whatsapp', 'WhatsApp'),
    ]
    SHIPPING_TYPE_CHOICES = [
        ('local', 'Local'),
        ('nacional', 'Nacional'),
    ]
    LOCAL_SHIPPING_CHOICES = [
        ('meeting-point', 'Meeting Point'),
        ('pzexpress', 'PZ Express'),
    ]
    CARRIER_CHOICES = [
        ('estafeta', 'Estafeta'),
        ('dhl', 'DHL'),
        ('fedex', 'FedEx'),
        ('correos', 'Correos de México'),
    ]

    sale_id = models.CharField(max_length=30, unique=True, editable=False)
    name = models.CharField(max_length=200)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending', db_index=True)
    social_media_platform = models.CharField(max_length=20, choices=PLATFORM_CHOICES)
    social_media_username = models.CharField(max_length=200)
    tracking_number = models.CharField(max_length=100, blank=True)
    invoice_required = models.BooleanField(default=False)
    shipping_type = models.CharField(max_length=20, choices=SHIPPING_TYPE_CHOICES)
    local_shipping_option = models.CharField(max_length=20, choices=LOCAL_SHIPPING_CHOICES, blank=True)
    local_address = models.TextField(blank=True)
    national_shipping_carrier = models.CharField(max_length=20, choices=CARRIER_CHOICES, blank=True)
    shipping_description = models.TextField(blank=True)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'), validators=[MinValueValidator(Decimal('0'))])
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'), validators=[MinValueValidator(Decimal('0'))])
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='sales')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.sale_id} - {self.name}"

    def save(self, *args, **kwargs):
        if not self.sale_id:
            self.sale_id = Sale.next_sale_id()
        super().save(*args, **kwargs)

    @staticmethod
    def next_sale_id():
        """Next sequential id for the current year: SALE-2025-001, SALE-2025-002, ..."""
        prefix = f"SALE-{timezone.localdate().year}-"
        number = Sale.objects.filter(sale_id__startswith=prefix).count() + 1
        sale_id = f"{prefix}{number:03d}"
        while Sale.objects.filter(sale_id=sale_id).exists():
            number += 1
            sale_id = f"{prefix}{number:03d}"
        return sale_id

    def get_item_ids(self):
        """Item ids expanded per unit, e.g. a line of 2 x item 5 gives [5, 5]"""
        ids = []
        for line in self.sale_items.all():
            ids.extend([line.item_id] * line.quantity)
        return ids

    class Meta:
        db_table = 'sales'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['-created_at'], name='idx_sale_created'),
        ]


class SaleItem(models.Model):
    """Units of one item sold in a sale"""
    sale = models.ForeignKey(Sale, on_delete=models.CASCADE, related_name='sale_items')
    item = models.ForeignKey(Item, on_delete=models.PROTECT, related_name='sale_items')
    quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])

    def __str__(self):
        return f"{self.sale.sale_id}: {self.quantity} x {self.item.name}"

    class Meta:
        db_table = 'sale_items'
        ordering = ['id']
        unique_together = [['sale', 'item']]


class SaleExtra(models.Model):
    """Flat-fee add-on charged on a sale"""
    sale = models.ForeignKey(Sale, on_delete=models.CASCADE, related_name='extras')
    name = models.CharField(max_length=200)
    price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal('0'))])

    def __str__(self):
        return f"{self.name} (${self.price})"

    class Meta:
        db_table = 'sale_extras'
        ordering = ['id']
