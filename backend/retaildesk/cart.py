"""
Cart: candidate purchase lines held before a sale is attempted.

The cart never touches the database. Each line caches the item's name,
unit price and available stock at the moment the item was added, and the
stock ceiling it enforces is only a courtesy check: the authoritative
check is the conditional decrement performed by sales_service.record_sale.

Rejections raise CartError and leave the cart exactly as it was.
"""

from __future__ import annotations

from dataclasses import dataclass


class CartError(Exception):
    """Raised when a cart change is refused; the cart is left unchanged."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


@dataclass
class CartLine:
    item_id: int
    item_code: str
    item_name: str
    unit_price_cents: int
    available_stock: int
    quantity: int = 1

    @property
    def subtotal_cents(self) -> int:
        return self.quantity * self.unit_price_cents

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "item_code": self.item_code,
            "item_name": self.item_name,
            "unit_price_cents": self.unit_price_cents,
            "available_stock": self.available_stock,
            "quantity": self.quantity,
            "subtotal_cents": self.subtotal_cents,
        }


class Cart:
    """Ordered (item, quantity) lines; totals are always recomputed."""

    def __init__(self):
        self._lines: dict[int, CartLine] = {}

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines.values())

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def get_line(self, item_id: int) -> CartLine | None:
        return self._lines.get(item_id)

    def add(self, item, quantity: int = 1) -> CartLine:
        """
        Add `quantity` units of a catalog item.

        An existing line grows by `quantity`; otherwise a new line is created
        with a fresh snapshot of the item's price and stock.
        """
        if quantity < 1:
            raise CartError("Quantity must be at least 1", details={"item_id": item.id})

        existing = self._lines.get(item.id)
        current = existing.quantity if existing else 0
        available = existing.available_stock if existing else item.quantity

        if available <= 0:
            raise CartError(
                f"{item.item_name} is out of stock",
                details={"item_id": item.id, "available": 0},
            )

        if current + quantity > available:
            raise CartError(
                f"Only {available} units of {item.item_name} available",
                details={
                    "item_id": item.id,
                    "requested_quantity": current + quantity,
                    "available": available,
                },
            )

        if existing:
            existing.quantity = current + quantity
            return existing

        line = CartLine(
            item_id=item.id,
            item_code=item.item_code,
            item_name=item.item_name,
            unit_price_cents=item.unit_price_cents,
            available_stock=item.quantity,
            quantity=quantity,
        )
        self._lines[item.id] = line
        return line

    def update_quantity(self, item_id: int, quantity: int) -> CartLine:
        """
        Set a line's quantity, clamped to the cached available stock.

        Quantities below 1 are refused; use remove() to drop a line.
        """
        line = self._lines.get(item_id)
        if line is None:
            raise CartError("Item is not in the cart", details={"item_id": item_id})
        if quantity < 1:
            raise CartError(
                "Quantity must be at least 1; remove the item instead",
                details={"item_id": item_id},
            )
        line.quantity = min(quantity, line.available_stock)
        return line

    def remove(self, item_id: int) -> None:
        self._lines.pop(item_id, None)

    def clear(self) -> None:
        self._lines.clear()

    def total(self) -> int:
        """Sum of quantity x unit price over all lines, in cents."""
        return sum(line.subtotal_cents for line in self._lines.values())

    @property
    def total_cents(self) -> int:
        return self.total()

    def item_count(self) -> int:
        return sum(line.quantity for line in self._lines.values())

    def to_dict(self) -> dict:
        return {
            "lines": [line.to_dict() for line in self.lines],
            "item_count": self.item_count(),
            "total_cents": self.total(),
        }
