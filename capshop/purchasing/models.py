from django.core.validators import MinValueValidator
from django.db import models
from decimal import Decimal
from capshop.catalog.models import RawMaterial
from capshop.core.models import User


class OrderMaterial(models.Model):
    """Purchase order for raw materials placed with a distributor"""
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('ordered', 'Ordered'),
        ('received', 'Received'),
    ]
    CARRIER_CHOICES = [
        ('estafeta', 'Estafeta'),
        ('dhl', 'DHL'),
    ]

    distributor = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending', db_index=True)
    tracking_number = models.CharField(max_length=100, blank=True)
    carrier = models.CharField(max_length=20, choices=CARRIER_CHOICES, blank=True)
    estimated_delivery = models.DateField(null=True, blank=True)
    # Set once raw material stock has been topped up for this order
    inventory_processed = models.BooleanField(default=False)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='order_materials')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Order #{self.id} - {self.distributor} ({self.status})"

    class Meta:
        db_table = 'order_materials'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['status', 'inventory_processed'], name='idx_order_status_processed'),
        ]


class OrderMaterialGroup(models.Model):
    """Quantity requested for every design in the group"""
    order = models.ForeignKey(OrderMaterial, on_delete=models.CASCADE, related_name='groups')
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])

    def __str__(self):
        return f"Order #{self.order_id} group x{self.quantity}"

    class Meta:
        db_table = 'order_material_groups'
        ordering = ['id']


class OrderDesign(models.Model):
    """Raw material and cut dimensions requested within a group"""
    group = models.ForeignKey(OrderMaterialGroup, on_delete=models.CASCADE, related_name='designs')
    raw_material = models.ForeignKey(RawMaterial, on_delete=models.PROTECT, related_name='order_designs')
    height = models.DecimalField(max_digits=8, decimal_places=2, validators=[MinValueValidator(Decimal('0.01'))])
    width = models.DecimalField(max_digits=8, decimal_places=2, validators=[MinValueValidator(Decimal('0.01'))])

    def __str__(self):
        return f"{self.raw_material.name} {self.width}x{self.height}"

    class Meta:
        db_table = 'order_designs'
        ordering = ['id']
