from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


DOCUMENT_SALE = "SALE"
DOCUMENT_PURCHASE = "PURCHASE"
DOCUMENT_TYPES = (DOCUMENT_SALE, DOCUMENT_PURCHASE)

# Sign of the stock effect: sales take units out, purchases bring them in
DIRECTION_OUT = "OUT"
DIRECTION_IN = "IN"
DIRECTION_BY_DOCUMENT = {
    DOCUMENT_SALE: DIRECTION_OUT,
    DOCUMENT_PURCHASE: DIRECTION_IN,
}

STATUS_PENDING = "PENDING"
STATUS_COMPLETED = "COMPLETED"
STATUS_CANCELLED = "CANCELLED"
ORDER_STATUSES = (STATUS_PENDING, STATUS_COMPLETED, STATUS_CANCELLED)

PAYMENT_METHODS = ("CASH", "CARD", "PIX", "BANK_SLIP")
DEFAULT_PAYMENT_METHOD = "CASH"


class Order(db.Model):
    """
    Sale or purchase document.

    Two independent axes:
    - status (PENDING / COMPLETED / CANCELLED) is workflow information only
    - stock_effect_applied records whether this order's quantities are
      currently reflected in Product.stock. It is set once inside the
      creation transaction and cleared once inside the cancellation
      transaction; status changes never read or write it.
    - stock_effects holds the per-product quantities creation actually
      moved. Cancellation reverses exactly these, so an edit that replaced
      the items in between cannot change what is put back.

    `number` is the display number ("000001"), unique per
    (company, document_type); the primary key is the internal identity.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("company_id", "document_type", "number", name="uq_orders_company_type_number"),
        db.Index("ix_orders_company_type_status_created", "company_id", "document_type", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)

    document_type = db.Column(db.String(16), nullable=False)
    direction = db.Column(db.String(8), nullable=False)
    number = db.Column(db.String(16), nullable=False)

    # Customer for sales, supplier for purchases
    counterpart = db.Column(db.String(100), nullable=True)

    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)

    payment_method = db.Column(db.String(16), nullable=False, default=DEFAULT_PAYMENT_METHOD)
    notes = db.Column(db.String(500), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=STATUS_PENDING, index=True)
    stock_effect_applied = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    items = db.relationship(
        "OrderItem",
        back_populates="order",
        order_by="OrderItem.id",
        cascade="all, delete-orphan",
        lazy=True,
    )
    stock_effects = db.relationship(
        "OrderStockEffect",
        back_populates="order",
        order_by="OrderStockEffect.product_id",
        cascade="all, delete-orphan",
        lazy=True,
    )

    def __repr__(self) -> str:
        return f"<Order id={self.id} {self.document_type} number={self.number!r} status={self.status}>"

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "company_id": self.company_id,
            "document_type": self.document_type,
            "direction": self.direction,
            "number": self.number,
            "counterpart": self.counterpart,
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "total_cents": self.total_cents,
            "payment_method": self.payment_method,
            "notes": self.notes,
            "status": self.status,
            "stock_effect_applied": self.stock_effect_applied,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "completed_at": to_utc_z(self.completed_at),
            "cancelled_at": to_utc_z(self.cancelled_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class OrderItem(db.Model):
    """Line item; replaced wholesale when the order is edited."""
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    subtotal_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    order = db.relationship("Order", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "product_code": self.product.code if self.product else None,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "subtotal_cents": self.subtotal_cents,
            "created_at": to_utc_z(self.created_at),
        }


class OrderStockEffect(db.Model):
    """Quantity of one product moved by an order's creation; deleted on reversal."""
    __tablename__ = "order_stock_effects"
    __table_args__ = (
        db.UniqueConstraint("order_id", "product_id", name="uq_order_stock_effects_order_product"),
        db.CheckConstraint("quantity > 0", name="quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    order = db.relationship("Order", back_populates="stock_effects")


class OrderSequence(db.Model):
    """
    Per-tenant, per-document-type counter for display numbers.

    next_number is advanced with a single conditional UPDATE so concurrent
    creators never read the same value.
    """
    __tablename__ = "order_sequences"
    __table_args__ = (
        db.UniqueConstraint("company_id", "document_type", name="uq_order_sequences_company_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    document_type = db.Column(db.String(16), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
