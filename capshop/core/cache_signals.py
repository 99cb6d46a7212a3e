"""
Cache invalidation signals
Invalidate dashboard aggregates when inventory, orders or sales change.

Queryset.update() does not send signals; services that adjust stock with
F() expressions call invalidate_dashboard_cache() themselves.
"""
from django.db import transaction
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging

from capshop.core.cache_utils import invalidate_dashboard_cache
from capshop.catalog.models import Item, RawMaterial
from capshop.purchasing.models import OrderMaterial, OrderDesign
from capshop.sales.models import Sale, SaleItem

logger = logging.getLogger(__name__)


@receiver([post_save, post_delete], sender=Item)
@receiver([post_save, post_delete], sender=RawMaterial)
@receiver([post_save, post_delete], sender=OrderMaterial)
@receiver([post_save, post_delete], sender=OrderDesign)
@receiver([post_save, post_delete], sender=Sale)
@receiver([post_save, post_delete], sender=SaleItem)
def invalidate_dashboard_on_change(sender, **kwargs):
    try:
        # Invalidate only after the DB commit
        transaction.on_commit(invalidate_dashboard_cache)
        logger.debug(f"{sender.__name__} changed, dashboard cache invalidation scheduled")
    except Exception as e:
        logger.warning(f"Error in invalidate_dashboard_on_change signal: {e}")
