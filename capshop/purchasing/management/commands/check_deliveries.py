"""
Django management command to poll carrier tracking for every ordered
material order and mark delivered ones as received
"""
from django.core.management.base import BaseCommand
from django.db import DatabaseError
from rest_framework.exceptions import APIException
from capshop.purchasing.models import OrderMaterial
from capshop.purchasing.services import check_delivery


class Command(BaseCommand):
    help = 'Check carrier tracking for ordered material orders and receive delivered ones'

    def add_arguments(self, parser):
        parser.add_argument(
            '--order-id',
            type=int,
            help='Check specific order ID only',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report delivery status without updating orders or stock',
        )

    def handle(self, *args, **options):
        order_id = options.get('order_id')
        dry_run = options.get('dry_run', False)

        orders = OrderMaterial.objects.filter(status='ordered').exclude(tracking_number='').exclude(carrier='')
        if order_id:
            orders = orders.filter(id=order_id)

        self.stdout.write(f"Orders to check: {orders.count()}")

        received = 0
        failed = 0
        for order in orders.order_by('id'):
            try:
                result = check_delivery(order, apply=not dry_run)
            except APIException as e:
                failed += 1
                self.stdout.write(self.style.ERROR(f"Order #{order.id} ({order.carrier} {order.tracking_number}): {e.detail}"))
                continue
            except DatabaseError as e:
                failed += 1
                self.stdout.write(self.style.ERROR(f"Order #{order.id}: database error: {e}"))
                continue

            if not result['isDelivered']:
                self.stdout.write(f"Order #{order.id}: in transit ({len(result['events'])} events)")
            elif dry_run:
                self.stdout.write(self.style.WARNING(f"Order #{order.id}: delivered (dry run, not updated)"))
            elif result['update']['updated']:
                received += 1
                materials = len(result['update']['replenished'])
                self.stdout.write(self.style.SUCCESS(f"Order #{order.id}: received, {materials} raw material(s) replenished"))

        self.stdout.write("")
        self.stdout.write(self.style.SUCCESS(f"Received: {received}"))
        if failed:
            self.stdout.write(self.style.WARNING(f"Failed lookups: {failed}"))
