from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from backoffice.time_utils import to_utc_z


class Product(db.Model):
    """
    Sellable product with stock tracked in its base unit.

    WHY: The conversion table and bundle definition live in child tables
    (ProductUnit / ProductComponent) rather than JSON blobs, so they are
    validated once when written and read back as typed rows.

    Stock is only ever changed by services.stock_service.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sku = db.Column(db.String(64), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=False)

    base_unit = db.Column(db.String(32), nullable=False, default="unit")
    # Price per base unit
    price_cents = db.Column(db.Integer, nullable=False, default=0)

    # Base-unit terms; composite products keep 0 (their components carry stock)
    stock = db.Column(db.Numeric(14, 3), nullable=False, default=Decimal("0"))

    is_composite = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    units = db.relationship(
        "ProductUnit",
        backref="product",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="ProductUnit.id",
    )
    components = db.relationship(
        "ProductComponent",
        foreign_keys="ProductComponent.bundle_id",
        backref="bundle",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="ProductComponent.position",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def conversion_table(self) -> dict:
        from ..services.units import UnitConversion

        return {
            u.name: UnitConversion(factor=Decimal(u.factor), price_cents=u.price_cents)
            for u in self.units
        }

    def bundle_components(self) -> list:
        from ..services.composite import BundleComponent

        return [
            BundleComponent(
                component_id=c.component_id,
                quantity=Decimal(c.quantity),
                unit=c.unit,
            )
            for c in self.components
        ]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "base_unit": self.base_unit,
            "price_cents": self.price_cents,
            "stock": str(self.stock),
            "is_composite": self.is_composite,
            "is_active": self.is_active,
            "units": [u.to_dict() for u in self.units],
            "components": [c.to_dict() for c in self.components],
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class ProductUnit(db.Model):
    """
    One row of a product's conversion table.

    factor: base units per one of this unit (a "bag(5kg)" has factor 5).
    price_cents: price per one of this unit. Declared independently of the
    factor; a presentation price need not equal factor * base price.
    """
    __tablename__ = "product_units"
    __table_args__ = (
        db.UniqueConstraint("product_id", "name", name="uq_product_units_product_name"),
        db.CheckConstraint("factor > 0", name="ck_product_units_factor_positive"),
        db.CheckConstraint("price_cents >= 0", name="ck_product_units_price_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    name = db.Column(db.String(32), nullable=False)
    factor = db.Column(db.Numeric(14, 4), nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "factor": str(self.factor),
            "price_cents": self.price_cents,
        }


class ProductComponent(db.Model):
    """
    One line of a bundle definition: `quantity` of `unit` of the component
    per single bundle. Components are never composite themselves.
    """
    __tablename__ = "product_components"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_product_components_quantity_positive"),
        db.Index("ix_product_components_bundle_position", "bundle_id", "position"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    bundle_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    component_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    quantity = db.Column(db.Numeric(14, 3), nullable=False)
    unit = db.Column(db.String(32), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)

    component = db.relationship("Product", foreign_keys=[component_id])

    def to_dict(self) -> dict:
        return {
            "component_id": self.component_id,
            "quantity": str(self.quantity),
            "unit": self.unit,
            "position": self.position,
        }


class StockMovement(db.Model):
    """
    Append-only audit row for each stock change.

    WHY: Product.stock is a mutable quantity; movements let reconciliation
    explain every change (SUM(quantity_delta) == stock drift since creation).
    One row per product touched, so a bundle sale yields one row per component.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_product_occurred", "product_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    quantity_delta = db.Column(db.Numeric(14, 3), nullable=False)
    stock_after = db.Column(db.Numeric(14, 3), nullable=False)

    # sale | order | order_edit | order_item_delete | order_cancel | adjustment
    reason = db.Column(db.String(32), nullable=False)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True, index=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)
    note = db.Column(db.String(255), nullable=True)

    user_id = db.Column(db.Integer, nullable=True)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "quantity_delta": str(self.quantity_delta),
            "stock_after": str(self.stock_after),
            "reason": self.reason,
            "order_id": self.order_id,
            "sale_id": self.sale_id,
            "note": self.note,
            "user_id": self.user_id,
            "occurred_at": to_utc_z(self.occurred_at),
        }
