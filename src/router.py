"""
Routes verified Stripe events to fulfillment.

Only `checkout.session.completed` produces PurchaseDetails; every other type
is ignored so that new provider event types never break the webhook.

Line items come from one of two payload shapes, chosen by configuration:
  - "display_items": legacy Checkout (API versions before 2020-08-27)
  - "line_items":    the expanded `line_items.data[]` list on newer versions
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Tuple, Union

from errors import IncompletePayload
from verifier import VerifiedEvent

CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"
LINE_ITEM_FIELDS = ("display_items", "line_items")


@dataclass(frozen=True)
class LineItem:
    description: str
    quantity: int
    amount: Optional[int] = None  # line total (unit price x quantity), minor units
    currency: Optional[str] = None


@dataclass(frozen=True)
class ShippingAddress:
    line1: Optional[str] = None
    line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None


@dataclass(frozen=True)
class ShippingDetails:
    name: str
    address: ShippingAddress


@dataclass(frozen=True)
class PurchaseDetails:
    event_id: str
    items: Tuple[LineItem, ...]
    shipping: ShippingDetails

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [asdict(item) for item in self.items],
            "shippingDetails": asdict(self.shipping),
        }


def _quantity(raw: Dict[str, Any]) -> int:
    quantity = raw.get("quantity")
    return 1 if quantity is None else int(quantity)


def _display_item(raw: Dict[str, Any]) -> LineItem:
    description = (
        (raw.get("custom") or {}).get("name")
        or ((raw.get("sku") or {}).get("attributes") or {}).get("name")
        or (raw.get("plan") or {}).get("nickname")
        or raw.get("description")
    )
    if not description:
        raise IncompletePayload("Line item has no description")
    quantity = _quantity(raw)
    # display_items carry the unit amount
    unit_amount = raw.get("amount")
    return LineItem(
        description=description,
        quantity=quantity,
        amount=None if unit_amount is None else int(unit_amount) * quantity,
        currency=raw.get("currency"),
    )


def _line_item(raw: Dict[str, Any]) -> LineItem:
    description = raw.get("description") or ((raw.get("price") or {}).get("nickname"))
    if not description:
        raise IncompletePayload("Line item has no description")
    return LineItem(
        description=description,
        quantity=_quantity(raw),
        amount=raw.get("amount_total"),
        currency=raw.get("currency"),
    )


def _extract_items(session: Dict[str, Any], line_items_field: str) -> Tuple[LineItem, ...]:
    if line_items_field == "display_items":
        raw_items = session.get("display_items")
        parse = _display_item
    else:
        raw_items = (session.get("line_items") or {}).get("data")
        parse = _line_item

    if not raw_items:
        raise IncompletePayload(f"Checkout session has no {line_items_field}")

    return tuple(parse(raw) for raw in raw_items)


def _extract_shipping(session: Dict[str, Any]) -> ShippingDetails:
    # `shipping` was renamed to `shipping_details` in API version 2022-08-01
    shipping = session.get("shipping") or session.get("shipping_details")
    if not shipping:
        raise IncompletePayload("Checkout session has no shipping details")

    name = shipping.get("name")
    address = shipping.get("address")
    if not name or not address:
        raise IncompletePayload("Shipping details are missing name or address")

    return ShippingDetails(
        name=name,
        address=ShippingAddress(**{k: address.get(k) for k in ShippingAddress.__dataclass_fields__}),
    )


def route(
    event: VerifiedEvent,
    line_items_field: str = "display_items",
) -> Union[PurchaseDetails, IncompletePayload, None]:
    """
    Return PurchaseDetails for a completed checkout, None for any other event
    type, or IncompletePayload when the checkout lacks items or shipping.
    """
    if line_items_field not in LINE_ITEM_FIELDS:
        raise ValueError(f"Unsupported line items field: {line_items_field}")

    if event.type != CHECKOUT_SESSION_COMPLETED:
        return None

    data = event.payload.get("data")
    session = data.get("object") if isinstance(data, dict) else None
    if not isinstance(session, dict):
        return IncompletePayload("Event has no data.object")

    try:
        return PurchaseDetails(
            event_id=event.id,
            items=_extract_items(session, line_items_field),
            shipping=_extract_shipping(session),
        )
    except IncompletePayload as e:
        return e
    except (AttributeError, TypeError, ValueError) as e:
        return IncompletePayload(f"Checkout session is malformed: {e}")
