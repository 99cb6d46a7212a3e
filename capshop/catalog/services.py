"""
Stock counter adjustments and delete pre-checks for items and raw materials.

Counters are changed with single conditional UPDATE statements
(``quantity = quantity - n WHERE quantity >= n``) so concurrent requests
can never read the same value and lose an update. Callers that combine
several adjustments wrap them in ``transaction.atomic()`` and invalidate the
dashboard cache once the block has finished.
"""
import logging

from django.db.models import F
from django.utils import timezone

from capshop.core.exceptions import NotFound, OutOfStock, Conflict
from .models import Item, RawMaterial

logger = logging.getLogger(__name__)


def decrement_item_stock(item_id, units):
    """
    Remove ``units`` from an item's quantity.

    Raises:
        NotFound: the item does not exist
        OutOfStock: fewer than ``units`` are on hand (nothing is written)
    """
    updated = Item.objects.filter(pk=item_id, quantity__gte=units).update(
        quantity=F('quantity') - units,
        updated_at=timezone.now(),
    )
    if updated:
        return

    current = Item.objects.filter(pk=item_id).values('name', 'quantity').first()
    if current is None:
        logger.warning(f"Stock decrement refused: item {item_id} not found")
        raise NotFound(f"Item with ID {item_id} not found")

    logger.warning(
        f"Stock decrement refused: item {item_id} has {current['quantity']}, {units} requested"
    )
    raise OutOfStock(
        f"Item {current['name']} is out of stock: only {current['quantity']} available, {units} requested"
    )


def restore_item_stock(item_id, units):
    """
    Put ``units`` back on an item's quantity.

    A deleted item is skipped; returns False in that case.
    """
    updated = Item.objects.filter(pk=item_id).update(
        quantity=F('quantity') + units,
        updated_at=timezone.now(),
    )
    if not updated:
        logger.info(f"Stock restore skipped: item {item_id} no longer exists")
    return bool(updated)


def add_raw_material_stock(material_id, amount):
    """Increase a raw material's quantity by ``amount``; raises NotFound if it is gone"""
    updated = RawMaterial.objects.filter(pk=material_id).update(
        quantity=F('quantity') + amount,
        updated_at=timezone.now(),
    )
    if not updated:
        raise NotFound(f"Raw material with ID {material_id} not found")
    return RawMaterial.objects.values_list('quantity', flat=True).get(pk=material_id)


def ensure_item_deletable(item):
    """Refuse deleting an item that a sale line still references"""
    if item.sale_items.exists():
        logger.warning(f"Delete refused: item {item.id} is used in sales")
        raise Conflict('This item is used in one or more sales')


def ensure_raw_material_deletable(material):
    """Refuse deleting a raw material that items or material orders still reference"""
    if material.item_materials.exists():
        logger.warning(f"Delete refused: raw material {material.id} is used in items")
        raise Conflict('This material is used in one or more items')
    if material.order_designs.exists():
        logger.warning(f"Delete refused: raw material {material.id} is used in material orders")
        raise Conflict('This material is used in one or more material orders')
