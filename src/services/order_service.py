"""Order placement and order queries.

Order creation validates the cart, reserves stock line by line inside a unit
of work, upserts the recipient, persists the order (regenerating the order
number once on collision), commits and then announces the order to
real-time listeners.
"""

import logging
import random
import re
import time
from datetime import datetime, timezone
from typing import Any

from pymongo import DESCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from src.api.middleware.error_handler import APIError, InfrastructureError, ValidationError
from src.core import currency as currency_table
from src.core.config import get_settings
from src.core.database import get_database, get_mongo_client, to_object_id
from src.core.realtime import get_notifier
from src.core.unit_of_work import UnitOfWork, unit_of_work
from src.models.order import Order, OrderItem
from src.schemas.auth import Actor, AuthenticatedActor
from src.schemas.order import OrderCreate
from src.services.recipient_service import RecipientStore
from src.services.settings_service import SettingsStore
from src.services.stock_service import StockReservation

logger = logging.getLogger(__name__)

ORDER_NUMBER_PREFIX = "ORD"

SUPPORTED_COUNTRIES = frozenset({"JO", "SA", "AE", "KW", "QA", "BH", "OM", "EG", "IQ", "LB", "PS"})

PAYMENT_METHODS = frozenset({"card", "cod"})

# Optional "+", 1-4 digit country code, 9-10 digit subscriber number
MOBILE_PATTERN = re.compile(r"^\+?[0-9]{1,4}[0-9]{9,10}$")


def generate_order_number() -> str:
    """Build an order number from the current time in milliseconds."""
    return f"{ORDER_NUMBER_PREFIX}{int(time.time() * 1000)}"


def regenerate_order_number() -> str:
    """Build a fallback order number with a random 0-999 suffix."""
    return f"{generate_order_number()}-{random.randint(0, 999)}"


def is_order_number_conflict(error: DuplicateKeyError) -> bool:
    """Check whether a duplicate key error was raised by the order_number index."""
    details = error.details or {}
    key_pattern = details.get("keyPattern") or {}
    if key_pattern:
        return "order_number" in key_pattern
    return "order_number" in str(error)


def _field_error(loc: list[str | int], msg: str, error_type: str = "missing") -> dict[str, Any]:
    return {"loc": loc, "msg": msg, "type": error_type}


class OrderService:
    """Service for placing and reading orders."""

    def __init__(self) -> None:
        """Initialize order service with storage and collaborators."""
        self.client = get_mongo_client()
        self.db = get_database()
        self.orders = self.db.orders
        self.settings = get_settings()
        self.reservation = StockReservation()
        self.recipients = RecipientStore()
        self.store_settings = SettingsStore()
        self.notifier = get_notifier()

    async def resolve_currency(self, requested: str | None) -> str:
        """Pick the order currency.

        The explicit request value wins; otherwise the store's configured
        default; otherwise the hard-coded fallback.

        Raises:
            ValidationError: If the chosen currency is not supported.
        """
        code = currency_table.normalize_code(requested)
        if not code:
            code = currency_table.normalize_code(await self.store_settings.get_default_currency())
        if not code:
            code = currency_table.normalize_code(self.settings.default_currency) or currency_table.FALLBACK_CURRENCY

        if not currency_table.is_supported(code):
            raise ValidationError(
                "Invalid currency",
                details=[_field_error(["currency"], f"Unsupported currency: {code}", "unsupported_currency")],
            )
        return code

    def validate_cart(self, cart: OrderCreate) -> None:
        """Check the cart, address and contact fields.

        All problems are reported together; the message names the first one.

        Raises:
            ValidationError: If anything is missing or malformed.
        """
        errors: list[dict[str, Any]] = []

        if not cart.items:
            errors.append(_field_error(["items"], "Order must contain at least one item"))
        for position, item in enumerate(cart.items):
            if item.quantity < 1:
                errors.append(
                    _field_error(["items", position, "quantity"], "Quantity must be at least 1", "greater_than_equal")
                )

        customer = cart.customer_info
        for field in ("first_name", "last_name", "email", "mobile"):
            if not getattr(customer, field):
                errors.append(_field_error(["customer_info", field], f"Customer {field.replace('_', ' ')} is required"))
        if customer.mobile and not MOBILE_PATTERN.match(customer.mobile):
            errors.append(_field_error(["customer_info", "mobile"], "Invalid mobile number format", "pattern"))
        if customer.secondary_mobile and not MOBILE_PATTERN.match(customer.secondary_mobile):
            errors.append(
                _field_error(["customer_info", "secondary_mobile"], "Invalid secondary mobile number format", "pattern")
            )

        address = cart.shipping_address
        for field in ("street", "city", "country"):
            if not getattr(address, field):
                errors.append(_field_error(["shipping_address", field], f"Shipping {field} is required"))
        if address.country and address.country.upper() not in SUPPORTED_COUNTRIES:
            errors.append(
                _field_error(["shipping_address", "country"], f"Shipping to {address.country} is not supported", "enum")
            )

        if cart.payment_method not in PAYMENT_METHODS:
            errors.append(_field_error(["payment_method"], "Payment method must be one of: card, cod", "enum"))

        if errors:
            raise ValidationError(errors[0]["msg"], details=errors)

    async def create_order(self, cart: OrderCreate, actor: Actor) -> dict[str, Any]:
        """Place an order, reserving stock for every line item.

        In transactional mode nothing is visible to other requests until
        commit and any failure discards every write. In degraded mode the
        decrements of earlier line items stay applied when a later one fails.

        Args:
            cart: Validated request body.
            actor: Authenticated user or guest, resolved at the boundary.

        Returns:
            dict: id, order_number, total_amount, currency and status.

        Raises:
            ValidationError: For malformed carts or unsupported currency.
            NotFoundError: If a product does not exist.
            AvailabilityError: For unknown sizes or insufficient stock.
            InfrastructureError: For storage failures or a repeated order number collision.
        """
        currency = await self.resolve_currency(cart.currency)
        self.validate_cart(cart)
        exchange_rate = currency_table.get_exchange_rate(currency)

        try:
            try:
                order, transactional = await self._place_order(
                    cart, actor, currency, exchange_rate, generate_order_number()
                )
            except DuplicateKeyError as e:
                # The server aborted the transaction, so the whole unit is replayed
                if not is_order_number_conflict(e):
                    raise
                retry_number = regenerate_order_number()
                logger.warning("Order number already taken, replaying order as %s", retry_number)
                order, transactional = await self._place_order(cart, actor, currency, exchange_rate, retry_number)
        except APIError:
            raise
        except DuplicateKeyError as e:
            if is_order_number_conflict(e):
                logger.error("Order number collision persisted after regeneration: %s", e)
            else:
                logger.error("Failed to create order: %s", e, exc_info=True)
            raise InfrastructureError("Failed to create order") from e
        except PyMongoError as e:
            logger.error("Failed to create order: %s", e, exc_info=True)
            raise InfrastructureError("Failed to create order") from e

        logger.info(
            "Order %s created: %d item(s), %.2f %s (transactional=%s)",
            order["order_number"],
            len(order["items"]),
            order["total_amount"],
            currency,
            transactional,
        )

        try:
            self.notifier.emit_new_order(order)
        except Exception as e:
            logger.error("Failed to emit new order event for %s: %s", order["order_number"], e)

        return {
            "id": str(order["_id"]),
            "order_number": order["order_number"],
            "total_amount": order["total_amount"],
            "currency": order["currency"],
            "status": order["status"],
        }

    async def _place_order(
        self,
        cart: OrderCreate,
        actor: Actor,
        currency: str,
        exchange_rate: float,
        order_number: str,
    ) -> tuple[Order, bool]:
        """Reserve stock, upsert the recipient and insert the order in one unit of work.

        Returns:
            tuple: The inserted order and whether it was written transactionally.

        Raises:
            DuplicateKeyError: If the order number is taken and the unit is
                transactional; the unit has been aborted and may be replayed.
        """
        async with unit_of_work(self.client) as uow:
            items: list[OrderItem] = []
            total = 0.0
            for position, item in enumerate(cart.items):
                line = await self.reservation.reserve(item, exchange_rate, session=uow.session, position=position)
                total += line["price"] * line["quantity"]
                items.append(line)

            await self._upsert_recipient(cart, session=uow.session)

            order = self._build_order(cart, items, total, currency, exchange_rate, actor, order_number)
            await self._insert_order(order, uow)

            await uow.commit()
            return order, uow.is_transactional

    async def _upsert_recipient(self, cart: OrderCreate, session: Any) -> None:
        customer = cart.customer_info
        address = cart.shipping_address
        await self.recipients.upsert_recipient(
            {"email": customer.email, "mobile": customer.mobile},
            {
                "first_name": customer.first_name,
                "last_name": customer.last_name,
                "secondary_mobile": customer.secondary_mobile,
                "address": {
                    "street": address.street,
                    "city": address.city,
                    "country": address.country.upper(),
                },
            },
            session=session,
        )

    def _build_order(
        self,
        cart: OrderCreate,
        items: list[OrderItem],
        total: float,
        currency: str,
        exchange_rate: float,
        actor: Actor,
        order_number: str,
    ) -> Order:
        customer = cart.customer_info
        address = cart.shipping_address
        now = datetime.now(timezone.utc)

        return {
            "order_number": order_number,
            "user": actor.user_id if isinstance(actor, AuthenticatedActor) else None,
            "items": items,
            "total_amount": round(total, 2),
            "currency": currency,
            "exchange_rate": exchange_rate,
            "shipping_address": {
                "street": address.street,
                "city": address.city,
                "country": address.country.upper(),
            },
            "customer_info": {
                "first_name": customer.first_name,
                "last_name": customer.last_name,
                "email": customer.email,
                "mobile": customer.mobile,
                "secondary_mobile": customer.secondary_mobile,
            },
            "payment_method": cart.payment_method,
            # Every method starts unpaid until the provider confirms
            "payment_status": "pending",
            "status": "pending",
            "delivery_company": None,
            "delivery_status": None,
            "created_at": now,
            "updated_at": now,
        }

    async def _insert_order(self, order: Order, uow: UnitOfWork) -> None:
        """Insert the order.

        Without a transaction the earlier writes are already applied, so a
        taken order number is regenerated and the insert retried in place.
        Inside a transaction the server has aborted it on the write error and
        the collision is left to the caller.

        Raises:
            DuplicateKeyError: On a transactional collision.
            InfrastructureError: If the regenerated number collides as well.
        """
        session = uow.session
        try:
            result = await self.orders.insert_one(order, session=session)
        except DuplicateKeyError as e:
            if uow.is_transactional or not is_order_number_conflict(e):
                raise
            taken = order["order_number"]
            order.pop("_id", None)
            order["order_number"] = regenerate_order_number()
            logger.warning("Order number %s already taken, retrying as %s", taken, order["order_number"])

            try:
                result = await self.orders.insert_one(order, session=session)
            except DuplicateKeyError as retry_error:
                if not is_order_number_conflict(retry_error):
                    raise
                logger.error("Order number collision persisted after regeneration: %s", retry_error)
                raise InfrastructureError("Failed to create order") from retry_error

        order["_id"] = result.inserted_id

    async def get_order(self, order_id: Any) -> Order | None:
        """Get an order by id.

        Returns:
            Order | None: The order, or None if not found or the id is malformed.
        """
        object_id = to_object_id(order_id)
        if object_id is None:
            return None
        return await self.orders.find_one({"_id": object_id})

    async def list_orders_for_user(self, user_id: str) -> list[Order]:
        """Get a user's orders, newest first."""
        cursor = self.orders.find({"user": user_id}).sort("created_at", DESCENDING)
        return await cursor.to_list(length=None)

    async def list_all_orders(self) -> list[Order]:
        """Get every order, newest first."""
        cursor = self.orders.find({}).sort("created_at", DESCENDING)
        return await cursor.to_list(length=None)
