from django.core.validators import MinValueValidator
from django.db import models
from decimal import Decimal


class RawMaterial(models.Model):
    """Fabric / design stock used to manufacture items"""
    name = models.CharField(max_length=200, db_index=True)
    description = models.TextField(blank=True)
    width = models.DecimalField(max_digits=8, decimal_places=2, validators=[MinValueValidator(Decimal('0.01'))])
    height = models.DecimalField(max_digits=8, decimal_places=2, validators=[MinValueValidator(Decimal('0.01'))])
    quantity = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'), validators=[MinValueValidator(Decimal('0'))])
    unit = models.CharField(max_length=20, default='m²')
    price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'), validators=[MinValueValidator(Decimal('0'))])
    supplier = models.CharField(max_length=200, blank=True)
    image_url = models.URLField(max_length=500, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.width}x{self.height})"

    class Meta:
        db_table = 'raw_materials'
        ordering = ['-created_at', '-id']


class Item(models.Model):
    """Manufactured product (surgical cap)"""
    CATEGORY_CHOICES = [
        ('sencillo', 'Sencillo'),
        ('doble-vista', 'Doble Vista'),
        ('completo', 'Completo'),
        ('sencillo-algodon', 'Sencillo Algodón'),
        ('completo-algodon', 'Completo Algodón'),
        ('stretch', 'Stretch'),
    ]

    name = models.CharField(max_length=200, db_index=True)
    category = models.CharField(max_length=30, choices=CATEGORY_CHOICES, db_index=True)
    description = models.TextField(blank=True)
    quantity = models.PositiveIntegerField(default=0)
    price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'), validators=[MinValueValidator(Decimal('0'))])
    materials = models.ManyToManyField(RawMaterial, through='ItemMaterial', related_name='items', blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.category})"

    class Meta:
        db_table = 'items'
        ordering = ['-created_at', '-id']


class ItemMaterial(models.Model):
    """Link between an item and a raw material it is made from"""
    item = models.ForeignKey(Item, on_delete=models.CASCADE, related_name='item_materials')
    raw_material = models.ForeignKey(RawMaterial, on_delete=models.PROTECT, related_name='item_materials')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.item.name} - {self.raw_material.name}"

    class Meta:
        db_table = 'item_materials'
        unique_together = [['item', 'raw_material']]


class Extra(models.Model):
    """Reusable flat-fee add-on offered with sales and quotes"""
    name = models.CharField(max_length=200, unique=True)
    price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'), validators=[MinValueValidator(Decimal('0'))])
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.name} (${self.price})"

    class Meta:
        db_table = 'extras'
        ordering = ['name']
