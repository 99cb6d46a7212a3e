from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Extended user model; logs in with email"""
    email = models.EmailField(unique=True)
    phone = models.CharField(max_length=20, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['username']

    class Meta:
        db_table = 'users'


class AutomationLog(models.Model):
    """Trace of stock movements and automatic order transitions"""
    ACTION_CHOICES = [
        ('sale_create', 'Sale Created'),
        ('sale_update', 'Sale Updated'),
        ('sale_delete', 'Sale Deleted'),
        ('stock_sale', 'Stock Removed (Sale)'),
        ('stock_return', 'Stock Restored (Sale Change)'),
        ('stock_gift', 'Stock Removed (Gift)'),
        ('status_auto_update_delivered', 'Status Updated (Delivered)'),
        ('inventory_auto_update', 'Inventory Updated'),
        ('order_processed_received', 'Order Processed'),
        ('order_processing_error', 'Order Processing Error'),
        ('delivery_status_check_error', 'Delivery Check Error'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='automation_logs')
    table_name = models.CharField(max_length=100)
    record_id = models.CharField(max_length=100)
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    details = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.action} {self.table_name}#{self.record_id}"

    class Meta:
        db_table = 'automation_logs'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['-created_at'], name='idx_autolog_created'),
            models.Index(fields=['action'], name='idx_autolog_action'),
            models.Index(fields=['table_name', 'record_id'], name='idx_autolog_record'),
        ]
