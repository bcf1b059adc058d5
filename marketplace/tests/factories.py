import uuid
from decimal import Decimal

import factory
from django.contrib.auth import get_user_model
from faker import Faker

from marketplace.models import Listing, Order, OrderLine
from payment_system.models import Transaction, TransactionItem

User = get_user_model()
fake = Faker()


class UserFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = User

    id = factory.LazyFunction(uuid.uuid4)
    username = factory.Sequence(lambda n: f"user_{n}")
    email = factory.Sequence(lambda n: f"user_{n}@example.com")
    first_name = factory.Faker("first_name")
    last_name = factory.Faker("last_name")
    password = factory.PostGenerationMethodCall("set_password", "defaultpassword")
    is_active = True
    role = "user"
    email_notifications = True


class SellerFactory(UserFactory):
    role = "seller"
    username = factory.Sequence(lambda n: f"seller_{n}")
    email = factory.Sequence(lambda n: f"seller_{n}@example.com")
    phone_number = factory.Sequence(lambda n: f"+2547{n % 100000000:08d}")


class AdminFactory(UserFactory):
    role = "admin"
    is_superuser = True
    is_staff = True
    username = factory.Sequence(lambda n: f"admin_{n}")
    email = factory.Sequence(lambda n: f"admin_{n}@example.com")


class ListingFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Listing

    product_id = factory.Sequence(lambda n: f"PROD-{n:05d}")
    seller = factory.SubFactory(SellerFactory)
    title = factory.Faker("sentence", nb_words=3)
    price = Decimal("100.00")
    verification_state = Listing.VERIFIED
    inventory = 10
    is_sold = False


class OrderFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Order

    buyer = factory.SubFactory(UserFactory)
    delivery_fee = Decimal("20.00")
    total_amount = Decimal("20.00")
    delivery_address = factory.LazyFunction(
        lambda: {
            "country": "Kenya",
            "region": fake.city(),
            "locality": fake.street_name(),
            "phone": "+254712345678",
        }
    )


class OrderLineFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = OrderLine

    order = factory.SubFactory(OrderFactory)
    position = factory.Sequence(lambda n: n)
    seller = factory.SubFactory(SellerFactory)
    product_id = factory.Sequence(lambda n: f"PROD-{n:05d}")
    name = factory.Faker("word")
    color = factory.Faker("color_name")
    price = Decimal("100.00")
    quantity = 1
    commission_rate = Decimal("0.05")


class TransactionFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Transaction

    order = factory.SubFactory(OrderFactory)
    reference = factory.Sequence(lambda n: f"ref_{n:08d}")
    authorization_url = factory.LazyAttribute(lambda o: f"https://checkout.mock/pay/{o.reference}")
    total_amount = factory.LazyAttribute(lambda o: o.order.total_amount)
    delivery_fee = factory.LazyAttribute(lambda o: o.order.delivery_fee)
    currency = "KES"


class TransactionItemFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = TransactionItem

    transaction = factory.SubFactory(TransactionFactory)
    line = factory.SubFactory(OrderLineFactory)
    seller = factory.LazyAttribute(lambda o: o.line.seller)
    item_amount = factory.LazyAttribute(lambda o: o.line.line_total)
    commission_rate = factory.LazyAttribute(lambda o: o.line.commission_rate)
    seller_share = factory.LazyAttribute(lambda o: o.line.seller_net)
    platform_commission = factory.LazyAttribute(lambda o: o.item_amount - o.seller_share)


def item_payload(listing, quantity=1, price=None, **overrides):
    """One placement item for ``listing``."""
    payload = {
        "seller_id": str(listing.seller_id),
        "product_id": listing.product_id,
        "name": listing.title,
        "color": "black",
        "price": str(price if price is not None else listing.price),
        "quantity": quantity,
    }
    payload.update(overrides)
    return payload


def delivery_address(**overrides):
    address = {"country": "Kenya", "region": "Nairobi", "locality": "Westlands", "phone": "+254712345678"}
    address.update(overrides)
    return address
