from __future__ import annotations

import random
from datetime import timedelta
from decimal import Decimal
from typing import Iterable

from decouple import config
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from modules.core.authorization import SALES_GROUP_NAME
from modules.customers.models import Customer, DocumentType
from modules.orders.constants import OrderStatus, PaymentMethod, PaymentStatus
from modules.orders.models import Order, OrderItem
from modules.pricing.constants import DiscountType
from modules.pricing.models import Coupon, ShippingZone
from modules.products.models import Product, ProductStatus


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def add_arguments(self, parser):
        parser.add_argument(
            "--password",
            default=None,
            help="Password for the seeded users (defaults to $SEED_PASSWORD).",
        )

    def handle(self, *args, **options):
        password = options["password"] or config("SEED_PASSWORD", default="")
        if not password:
            raise CommandError(
                "Provide --password or set SEED_PASSWORD for the seeded users."
            )

        random.seed(42)
        self.stdout.write("Seeding development data...")

        users = self._seed_users(password)
        customers = self._seed_customers(users)
        products = self._seed_products()
        coupons = self._seed_coupons()
        zones = self._seed_shipping_zones()
        orders_created = self._seed_orders(customers, products)

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={len(users)}, "
                f"customers={len(customers)}, "
                f"products={len(products)}, "
                f"coupons={coupons}, "
                f"zones={zones}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self, password: str) -> dict:
        User = get_user_model()
        sales_group, _ = Group.objects.get_or_create(name=SALES_GROUP_NAME)

        admin = User.objects.filter(username="admin").first()
        if admin is None:
            admin = User.objects.create_superuser(
                "admin", email="admin@example.com", password=password
            )
        sales = User.objects.filter(username="sales").first()
        if sales is None:
            sales = User.objects.create_user(
                "sales", email="sales@example.com", password=password
            )
        sales.groups.add(sales_group)
        customer = User.objects.filter(username="ana").first()
        if customer is None:
            customer = User.objects.create_user(
                "ana", email="ana@example.com", password=password
            )
        return {"admin": admin, "sales": sales, "customer": customer}

    def _seed_customers(self, users: dict) -> list[Customer]:
        self.stdout.write("Creating customers...")
        customers: list[Customer] = []
        seed_customers = [
            ("Ana Souza", "39053344705", DocumentType.CPF, "ana@example.com",
             "01310-100", "São Paulo", "SP", Decimal("5000.00")),
            ("Bruno Lima", "11222333000181", DocumentType.CNPJ, "bruno@example.com",
             "20040-002", "Rio de Janeiro", "RJ", Decimal("20000.00")),
            ("Carla Mendes", "98765432100", DocumentType.CPF, "carla@example.com",
             "30130-010", "Belo Horizonte", "MG", Decimal("3000.00")),
            ("Daniel Costa", "12345678909", DocumentType.CPF, "daniel@example.com",
             "69005-040", "Manaus", "AM", Decimal("1500.00")),
            ("Eduardo Alves", "98765432000198", DocumentType.CNPJ, "eduardo@example.com",
             "80010-000", "Curitiba", "PR", Decimal("10000.00")),
            ("Fernanda Rocha", "74125896300", DocumentType.CPF, "fernanda@example.com",
             "40020-000", "Salvador", "BA", Decimal("2500.00")),
        ]
        for index, (name, document, doc_type, email, zip_code, city, state, limit) in enumerate(
            seed_customers
        ):
            customer, _ = Customer.objects.get_or_create(
                document=document,
                defaults={
                    "name": name,
                    "document_type": doc_type,
                    "email": email,
                    "zip_code": zip_code,
                    "city": city,
                    "state": state,
                    "address": f"Rua Exemplo, {100 + index}",
                    "credit_limit": limit,
                    "is_active": True,
                    "sales_rep": users["sales"] if index % 2 == 0 else None,
                    "user": users["customer"] if index == 0 else None,
                },
            )
            customers.append(customer)
        self.stdout.write(self.style.SUCCESS("Creating customers... Done!"))
        return customers

    def _seed_products(self) -> list[Product]:
        self.stdout.write("Creating products...")
        products: list[Product] = []
        catalog = [
            ("ELET-001", "Monitor 27\"", "Eletrônicos", Decimal("1299.90"), Decimal("6.5")),
            ("ELET-002", "Teclado Mecânico", "Eletrônicos", Decimal("399.90"), Decimal("1.2")),
            ("ELET-003", "Mouse Gamer", "Eletrônicos", Decimal("249.90"), Decimal("0.2")),
            ("ELET-004", "Notebook 14\"", "Eletrônicos", Decimal("3999.00"), Decimal("1.6")),
            ("ELET-005", "Headset", "Eletrônicos", Decimal("299.90"), Decimal("0.4")),
            ("MOV-001", "Mesa Escritório", "Móveis", Decimal("899.00"), Decimal("25")),
            ("MOV-002", "Cadeira Ergonômica", "Móveis", Decimal("1499.00"), Decimal("18")),
            ("MOV-003", "Estante", "Móveis", Decimal("699.00"), Decimal("30")),
            ("OFF-001", "Papel A4", "Escritório", Decimal("29.90"), Decimal("2.5")),
            ("OFF-002", "Caneta Azul", "Escritório", Decimal("4.90"), None),
            ("OFF-003", "Caderno", "Escritório", Decimal("19.90"), Decimal("0.3")),
            ("OFF-004", "Grampeador", "Escritório", Decimal("39.90"), Decimal("0.5")),
            ("OFF-005", "Post-it", "Escritório", Decimal("12.90"), None),
            ("OFF-006", "Calculadora", "Escritório", Decimal("89.90"), Decimal("0.3")),
        ]
        for sku, name, category, price, weight in catalog:
            product, _ = Product.objects.get_or_create(
                sku=sku,
                defaults={
                    "name": name,
                    "description": category,
                    "price": price,
                    "cost": (price * Decimal("0.6")).quantize(Decimal("0.01")),
                    "weight": weight,
                    "stock_quantity": random.randint(10, 200),
                    "status": ProductStatus.ACTIVE,
                },
            )
            products.append(product)
        self.stdout.write(self.style.SUCCESS("Creating products... Done!"))
        return products

    def _seed_coupons(self) -> int:
        now = timezone.now()
        coupons = [
            {
                "code": "BEMVINDO10",
                "discount_type": DiscountType.PERCENTAGE,
                "discount_value": Decimal("10"),
                "max_discount_amount": Decimal("150.00"),
                "usage_limit_per_customer": 1,
            },
            {
                "code": "FRETE50",
                "discount_type": DiscountType.FIXED,
                "discount_value": Decimal("50.00"),
                "min_order_value": Decimal("300.00"),
                "usage_limit": 500,
                "expires_at": now + timedelta(days=90),
            },
        ]
        created = 0
        for data in coupons:
            _, was_created = Coupon.objects.get_or_create(
                code=data["code"], defaults=data
            )
            created += int(was_created)
        return created

    def _seed_shipping_zones(self) -> int:
        zones = [
            ("01310", "São Paulo - Centro", Decimal("12.00"), False),
            ("20040", "Rio de Janeiro - Centro", Decimal("18.00"), False),
            ("30130", "Belo Horizonte - Centro", Decimal("20.00"), False),
            ("69005", "Manaus - Centro", Decimal("35.00"), True),
        ]
        created = 0
        for prefix, name, fee, remote in zones:
            _, was_created = ShippingZone.objects.get_or_create(
                zip_prefix=prefix,
                defaults={"name": name, "fee": fee, "is_remote": remote},
            )
            created += int(was_created)
        return created

    def _seed_orders(self, customers: Iterable[Customer], products: list[Product]) -> int:
        """Historical orders so loyalty tiers and credit usage have data."""
        self.stdout.write("Creating orders...")
        orders_created = 0
        customers_list = list(customers)
        if not customers_list or not products:
            self.stdout.write(self.style.WARNING("Skipping orders (no customers/products)."))
            return 0

        outcomes = [
            ((OrderStatus.DELIVERED, PaymentStatus.PAID), 0.50),
            ((OrderStatus.PENDING, PaymentStatus.PENDING), 0.15),
            ((OrderStatus.CANCELLED, PaymentStatus.REFUNDED), 0.15),
            ((OrderStatus.PAID, PaymentStatus.PAID), 0.10),
            ((OrderStatus.PENDING, PaymentStatus.OVERDUE), 0.10),
        ]
        choices = [outcome for outcome, _ in outcomes]
        weights = [weight for _, weight in outcomes]

        for i in range(40):
            customer = random.choice(customers_list)
            status, payment_status = random.choices(choices, weights=weights, k=1)[0]

            order, created = Order.objects.get_or_create(
                notes=f"Seed order {i + 1}",
                defaults={
                    "customer": customer,
                    "status": status,
                    "payment_status": payment_status,
                    "payment_method": random.choice(PaymentMethod.values),
                    "shipping_zip_code": customer.zip_code,
                    "shipping_city": customer.city,
                    "shipping_state": customer.state,
                },
            )
            if not created:
                continue

            total = Decimal("0.00")
            item_count = random.randint(1, 4)
            for product in random.sample(products, k=min(item_count, len(products))):
                item = OrderItem.objects.create(
                    order=order,
                    product=product,
                    quantity=random.randint(1, 3),
                    unit_price=product.price,
                )
                total += item.subtotal

            created_at = timezone.now() - timedelta(days=random.randint(1, 120))
            Order.objects.filter(id=order.id).update(
                created_at=created_at, subtotal=total, total_amount=total
            )
            orders_created += 1

        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return orders_created
