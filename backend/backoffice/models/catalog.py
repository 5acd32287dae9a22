from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Product(db.Model):
    """
    Product master data, scoped to a company.

    STOCK: `stock` is the quantity on hand. It is written only by the stock
    ledger service (services/stock_ledger.py) through a conditional UPDATE;
    no other code path assigns it. The CHECK constraint is a last line of
    defense for the non-negativity invariant.

    DELETION: products referenced by any order item are soft-deactivated
    (is_active=False) instead of deleted.
    """
    __tablename__ = "products"
    __table_args__ = (
        # Codes are unique within a company
        db.UniqueConstraint("company_id", "code", name="uq_products_company_code"),
        db.Index("ix_products_company_name", "company_id", "name"),
        db.Index("ix_products_company_active_stock", "company_id", "is_active", "stock"),
        db.CheckConstraint("stock >= 0", name="stock_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)

    code = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(100), nullable=True)
    brand = db.Column(db.String(100), nullable=True)
    unit = db.Column(db.String(16), nullable=False, default="UN")

    # Authoritative storage in cents
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)
    sale_price_cents = db.Column(db.Integer, nullable=False, default=0)

    stock = db.Column(db.Integer, nullable=False, default=0)
    min_stock = db.Column(db.Integer, nullable=False, default=5)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    company = db.relationship("Company", backref=db.backref("products", lazy=True))

    def __repr__(self) -> str:
        return f"<Product id={self.id} code={self.code!r} name={self.name!r} company_id={self.company_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "brand": self.brand,
            "unit": self.unit,
            "cost_price_cents": self.cost_price_cents,
            "sale_price_cents": self.sale_price_cents,
            "stock": self.stock,
            "min_stock": self.min_stock,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
