"""
Sale operations that keep item stock in step with sale lines.

Sales carry their items as a list of ids, one per unit. Lines are stored
once per distinct item with the unit count, and every change is reconciled
per unit:

- create: take each item's unit count out of stock, then save the sale
- update: return ``before - after`` units first, then take ``after - before``
  units, then replace the lines
- delete: return every line's quantity (items deleted since are skipped)

Each operation runs in a single transaction; the first NotFound/OutOfStock
rolls back every adjustment the request already made.
"""
import logging
from collections import Counter
from decimal import Decimal

from django.db import transaction

from capshop.catalog.models import Item
from capshop.catalog.services import decrement_item_stock, restore_item_stock
from capshop.core.cache_utils import invalidate_dashboard_cache
from capshop.core.exceptions import NotFound
from capshop.core.utils import create_automation_log
from .models import Sale, SaleItem, SaleExtra

logger = logging.getLogger(__name__)

TABLE_NAME = 'sales'


def _take_stock(counts):
    for item_id, units in counts.items():
        decrement_item_stock(item_id, units)


def _return_stock(counts):
    returned = Counter()
    for item_id, units in counts.items():
        if restore_item_stock(item_id, units):
            returned[item_id] = units
    return returned


def _save_lines(sale, counts):
    SaleItem.objects.bulk_create([
        SaleItem(sale=sale, item_id=item_id, quantity=units)
        for item_id, units in counts.items()
    ])


def _save_extras(sale, extras):
    SaleExtra.objects.bulk_create([
        SaleExtra(sale=sale, name=extra['name'], price=extra['price'])
        for extra in extras
    ])


def _log_stock_movements(action, sale, counts, request):
    for item_id, units in counts.items():
        create_automation_log(
            action=action,
            table_name='items',
            record_id=item_id,
            details={'sale_id': sale.sale_id, 'quantity': units},
            request=request,
        )


def create_sale(data, user=None, request=None):
    """
    Create a sale and take its items out of stock.

    Raises:
        NotFound: an item id does not exist
        OutOfStock: an item has fewer units than requested
    """
    data = dict(data)
    counts = Counter(data.pop('items', []))
    extras = data.pop('extras', [])

    with transaction.atomic():
        _take_stock(counts)
        sale = Sale.objects.create(created_by=user, **data)
        _save_lines(sale, counts)
        _save_extras(sale, extras)

    invalidate_dashboard_cache()
    logger.info(f"Sale {sale.sale_id} created with {sum(counts.values())} unit(s)")
    create_automation_log(
        action='sale_create',
        table_name=TABLE_NAME,
        record_id=sale.id,
        details={'sale_id': sale.sale_id, 'items': dict(counts), 'total_amount': str(sale.total_amount)},
        request=request,
    )
    _log_stock_movements('stock_sale', sale, counts, request)
    return sale


def update_sale(sale, data, request=None):
    """
    Update a sale. Fields that are not supplied keep their value.

    When ``items`` is supplied, stock is reconciled per unit against the
    stored lines (returns before takes) and the lines are replaced. When
    ``extras`` is supplied the extra lines are replaced.
    """
    data = dict(data)
    item_ids = data.pop('items', None)
    extras = data.pop('extras', None)
    returned = Counter()
    taken = Counter()

    with transaction.atomic():
        sale = Sale.objects.select_for_update().get(pk=sale.pk)

        if item_ids is not None:
            before = Counter({line.item_id: line.quantity for line in sale.sale_items.all()})
            after = Counter(item_ids)
            returned = _return_stock(before - after)
            taken = after - before
            _take_stock(taken)
            sale.sale_items.all().delete()
            _save_lines(sale, after)

        for attr, value in data.items():
            setattr(sale, attr, value)
        sale.save()

        if extras is not None:
            sale.extras.all().delete()
            _save_extras(sale, extras)

    invalidate_dashboard_cache()
    logger.info(
        f"Sale {sale.sale_id} updated: {sum(returned.values())} unit(s) returned, "
        f"{sum(taken.values())} unit(s) taken"
    )
    create_automation_log(
        action='sale_update',
        table_name=TABLE_NAME,
        record_id=sale.id,
        details={
            'sale_id': sale.sale_id,
            'fields': sorted(data.keys()),
            'returned': dict(returned),
            'taken': dict(taken),
        },
        request=request,
    )
    _log_stock_movements('stock_return', sale, returned, request)
    _log_stock_movements('stock_sale', sale, taken, request)
    return sale


def delete_sale(sale, request=None):
    """Return every line's quantity to stock and delete the sale"""
    with transaction.atomic():
        sale = Sale.objects.select_for_update().get(pk=sale.pk)
        lines = Counter({line.item_id: line.quantity for line in sale.sale_items.all()})
        returned = _return_stock(lines)
        sale_pk, sale_id = sale.pk, sale.sale_id
        sale.delete()

    invalidate_dashboard_cache()
    logger.info(f"Sale {sale_id} deleted, {sum(returned.values())} unit(s) returned to stock")
    create_automation_log(
        action='sale_delete',
        table_name=TABLE_NAME,
        record_id=sale_pk,
        details={'sale_id': sale_id, 'returned': dict(returned)},
        request=request,
    )
    sale.sale_id = sale_id
    _log_stock_movements('stock_return', sale, returned, request)


def calculate_quote(items, extras, discount):
    """
    Price a quote without touching stock.

    total = max(0, items_total + extras_total - discount)

    Raises:
        NotFound: an item id does not exist
    """
    item_ids = {line['item_id'] for line in items}
    catalog = {item.id: item for item in Item.objects.filter(id__in=item_ids)}

    lines = []
    items_total = Decimal('0.00')
    for line in items:
        item = catalog.get(line['item_id'])
        if item is None:
            raise NotFound(f"Item with ID {line['item_id']} not found")
        line_total = item.price * line['quantity']
        items_total += line_total
        lines.append({
            'item_id': item.id,
            'name': item.name,
            'category': item.category,
            'unit_price': item.price,
            'quantity': line['quantity'],
            'line_total': line_total,
            'available': item.quantity,
        })

    extras_total = sum((extra['price'] for extra in extras), Decimal('0.00'))
    subtotal = items_total + extras_total
    return {
        'items': lines,
        'extras': [{'name': extra['name'], 'price': extra['price']} for extra in extras],
        'items_total': items_total,
        'extras_total': extras_total,
        'subtotal': subtotal,
        'discount': discount,
        'total': max(Decimal('0.00'), subtotal - discount),
    }
