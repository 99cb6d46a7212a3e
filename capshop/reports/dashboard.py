"""
Dashboard aggregates

Each table is summarized with a single aggregate query (conditional Count/Sum).
Results are cached per dashboard generation; see capshop.core.cache_utils.
"""
from decimal import Decimal

from django.db.models import Count, Sum, Avg, Q
from django.utils import timezone

from capshop.catalog.models import Item, RawMaterial
from capshop.core.cache_utils import cached_dashboard
from capshop.purchasing.models import OrderMaterial, OrderDesign
from capshop.sales.models import Sale


@cached_dashboard('dashboard_stats')
def compute_stats(item_threshold, material_threshold):
    items = Item.objects.aggregate(
        total=Count('id'),
        low_stock=Count('id', filter=Q(quantity__lte=item_threshold)),
    )
    materials = RawMaterial.objects.aggregate(
        total=Count('id'),
        low_stock=Count('id', filter=Q(quantity__lte=material_threshold)),
    )
    orders = OrderMaterial.objects.aggregate(
        total=Count('id'),
        pending=Count('id', filter=Q(status='pending')),
    )
    sales = Sale.objects.aggregate(
        total=Count('id'),
        revenue=Sum('total_amount'),
        pending=Count('id', filter=Q(status='pending')),
        shipped=Count('id', filter=Q(status='shipped')),
        delivered=Count('id', filter=Q(status='delivered')),
    )

    return {
        'totals': {
            'items': items['total'],
            'materials': materials['total'],
            'orders': orders['total'],
            'sales': sales['total'],
            'designs': OrderDesign.objects.count(),
            'revenue': sales['revenue'] or Decimal('0.00'),
        },
        'alerts': {
            'pendingOrders': orders['pending'],
            'lowStockItems': items['low_stock'],
            'lowStockMaterials': materials['low_stock'],
            'totalLowStock': items['low_stock'] + materials['low_stock'],
        },
        'salesByStatus': {
            'pending': sales['pending'],
            'shipped': sales['shipped'],
            'delivered': sales['delivered'],
        },
    }


@cached_dashboard('dashboard_category_distribution')
def compute_category_distribution():
    rows = Item.objects.values('category').annotate(count=Count('id')).order_by('category')
    return {row['category']: row['count'] for row in rows}


@cached_dashboard('dashboard_recent_activity')
def compute_recent_activity(limit):
    activities = []

    for item in Item.objects.order_by('-updated_at').values('id', 'name', 'updated_at', 'created_at')[:limit]:
        activities.append({
            'id': item['id'],
            'type': 'item',
            'title': item['name'],
            'subtitle': 'Item updated',
            'timestamp': item['updated_at'],
            'created_at': item['created_at'],
        })

    for material in RawMaterial.objects.order_by('-updated_at').values('id', 'name', 'updated_at', 'created_at')[:limit]:
        activities.append({
            'id': material['id'],
            'type': 'material',
            'title': material['name'],
            'subtitle': 'Material updated',
            'timestamp': material['updated_at'],
            'created_at': material['created_at'],
        })

    orders = OrderMaterial.objects.order_by('-updated_at').values('id', 'distributor', 'status', 'updated_at', 'created_at')
    for order in orders[:limit]:
        activities.append({
            'id': order['id'],
            'type': 'order',
            'title': f"Order from {order['distributor']}",
            'subtitle': f"Status: {order['status']}",
            'timestamp': order['updated_at'],
            'created_at': order['created_at'],
        })

    sales = Sale.objects.order_by('-updated_at').values('id', 'name', 'sale_id', 'total_amount', 'updated_at', 'created_at')
    for sale in sales[:limit]:
        activities.append({
            'id': sale['id'],
            'type': 'sale',
            'title': f"Sale to {sale['name']}",
            'subtitle': f"{sale['sale_id']} - ${sale['total_amount']}",
            'timestamp': sale['updated_at'],
            'created_at': sale['created_at'],
        })

    activities.sort(key=lambda activity: activity['timestamp'], reverse=True)
    return activities[:limit]


@cached_dashboard('dashboard_low_stock')
def compute_low_stock(item_threshold, material_threshold):
    items = Item.objects.filter(quantity__lte=item_threshold).order_by('quantity', 'name')
    materials = RawMaterial.objects.filter(quantity__lte=material_threshold).order_by('quantity', 'name')
    return {
        'items': list(items.values('id', 'name', 'quantity', 'category')),
        'materials': list(materials.values('id', 'name', 'quantity', 'unit')),
        'thresholds': {
            'items': item_threshold,
            'materials': material_threshold,
        },
    }


@cached_dashboard('dashboard_sales_summary')
def compute_sales_summary():
    now = timezone.localtime()
    summary = Sale.objects.aggregate(
        count=Count('id'),
        revenue=Sum('total_amount'),
        average=Avg('total_amount'),
        monthly=Sum('total_amount', filter=Q(created_at__year=now.year, created_at__month=now.month)),
    )
    average = summary['average'] or Decimal('0.00')
    return {
        'totalRevenue': summary['revenue'] or Decimal('0.00'),
        'averageOrderValue': Decimal(average).quantize(Decimal('0.01')),
        'salesCount': summary['count'],
        'monthlyRevenue': summary['monthly'] or Decimal('0.00'),
    }
