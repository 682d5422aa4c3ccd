from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Iterable

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from stockplanner.config import get_settings
from stockplanner.db.models import Product, PurchaseOrder, PurchaseOrderItem, PurchaseOrderStatus, Supplier
from stockplanner.errors import ConflictError, NotFoundError, StoreError, ValidationError
from stockplanner.services import metrics, planning

log = logging.getLogger("stockplanner.purchase_orders")

RECEIVED = PurchaseOrderStatus.RECEIVED.value


def _get_product(db: Session, product_id: int) -> Product:
    product = db.get(Product, product_id)
    if product is None:
        raise NotFoundError(f"Product {product_id} not found")
    return product


def _get_supplier(db: Session, supplier_id: int) -> Supplier:
    supplier = db.get(Supplier, supplier_id)
    if supplier is None:
        raise NotFoundError(f"Supplier {supplier_id} not found")
    return supplier


def get_purchase_order(db: Session, po_id: int) -> PurchaseOrder:
    po = db.execute(
        select(PurchaseOrder).options(selectinload(PurchaseOrder.items)).where(PurchaseOrder.id == po_id)
    ).scalar_one_or_none()
    if po is None:
        raise NotFoundError(f"Purchase order {po_id} not found")
    return po


def receipt_lines(po: PurchaseOrder) -> list[tuple[int, int]]:
    """(product_id, quantity) pairs credited on receipt.

    Orders without line items fall back to their legacy product/quantity.
    """
    if po.items:
        return [(int(it.product_id), int(it.quantity)) for it in po.items]
    if po.product_id is not None and po.quantity:
        return [(int(po.product_id), int(po.quantity))]
    return []


def create_purchase_order(
    db: Session,
    *,
    product_id: int | None = None,
    quantity: int | None = None,
    supplier_id: int | None = None,
    items: Iterable[dict] = (),
    expected_date: date | None = None,
    status: str = PurchaseOrderStatus.OPEN.value,
    today: date | None = None,
) -> PurchaseOrder:
    """Create an order in either shape.

    items: [{product_id, quantity}] together with ``supplier_id``; without
    items, ``product_id`` and ``quantity`` make a single-line order.
    """
    items = list(items)
    if status not in (PurchaseOrderStatus.DRAFT.value, PurchaseOrderStatus.OPEN.value):
        raise ValidationError("New purchase orders must be 'draft' or 'open'.")
    today = today or date.today()
    settings = get_settings()

    supplier = _get_supplier(db, supplier_id) if supplier_id is not None else None

    if items:
        if product_id is not None or quantity is not None:
            raise ValidationError("Send either items or product_id/quantity, not both.")
        if supplier is None:
            raise ValidationError("supplier_id is required for multi-line orders.")
        for it in items:
            if int(it["quantity"]) <= 0:
                raise ValidationError("quantity must be >= 1.")
            _get_product(db, int(it["product_id"]))
        lead = int(supplier.lead_time_days)
    else:
        if product_id is None or quantity is None:
            raise ValidationError("product_id and quantity are required.")
        if quantity <= 0:
            raise ValidationError("quantity must be >= 1.")
        product = _get_product(db, product_id)
        lead = (
            int(supplier.lead_time_days)
            if supplier is not None
            else metrics.effective_lead_time(product, settings.default_lead_time_days)
        )

    po = PurchaseOrder(
        status=status,
        supplier_id=supplier_id,
        product_id=None if items else product_id,
        quantity=None if items else quantity,
        expected_date=expected_date or today + timedelta(days=lead),
    )
    po.items = [PurchaseOrderItem(product_id=int(it["product_id"]), quantity=int(it["quantity"])) for it in items]

    try:
        db.add(po)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StoreError("Could not create purchase order.") from exc

    log.info("purchase_order_created id=%s status=%s lines=%s", po.id, po.status, len(items) or 1)
    return get_purchase_order(db, po.id)


def create_from_suggestion(
    db: Session,
    product_id: int,
    days: int | None = None,
    target_days: int | None = None,
    today: date | None = None,
) -> PurchaseOrder:
    _get_product(db, product_id)
    rows = metrics.coverage_suggestion_rows(db, days, target_days=target_days, today=today, product_ids=[product_id])
    if not rows:
        raise ValidationError(f"No reorder suggested for product {product_id}.")
    return create_purchase_order(
        db,
        product_id=product_id,
        quantity=int(rows[0]["suggested_qty"]),
        status=PurchaseOrderStatus.OPEN.value,
        today=today,
    )


def confirm_purchase_order(db: Session, po_id: int) -> PurchaseOrder:
    po = get_purchase_order(db, po_id)
    if po.status != PurchaseOrderStatus.DRAFT.value:
        raise ConflictError(f"Purchase order {po_id} is '{po.status}', only drafts can be confirmed.")
    po.status = PurchaseOrderStatus.OPEN.value
    db.commit()
    return get_purchase_order(db, po_id)


def credit_stock(db: Session, product_id: int, quantity: int) -> None:
    result = db.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(stock=Product.stock + quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFoundError(f"Product {product_id} not found")


def receive_purchase_order(db: Session, po_id: int) -> PurchaseOrder:
    """Credit stock for every line and mark the order received, atomically.

    The status flip is a conditional update on the locked row, so of two
    concurrent receives only one sees an affected row; the other gets a
    ConflictError. Any failure rolls back the stock credits and the flip.
    """
    try:
        po = db.execute(
            select(PurchaseOrder)
            .options(selectinload(PurchaseOrder.items))
            .where(PurchaseOrder.id == po_id)
            .with_for_update()
        ).scalar_one_or_none()
        if po is None:
            raise NotFoundError(f"Purchase order {po_id} not found")
        if po.status == RECEIVED:
            raise ConflictError(f"Purchase order {po_id} already received")

        claimed = db.execute(
            update(PurchaseOrder)
            .where(PurchaseOrder.id == po_id)
            .where(PurchaseOrder.status != RECEIVED)
            .values(status=RECEIVED, received_at=func.now())
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount != 1:
            raise ConflictError(f"Purchase order {po_id} already received")

        lines = receipt_lines(po)
        for product_id, quantity in lines:
            credit_stock(db, product_id, quantity)

        db.commit()
    except (NotFoundError, ConflictError):
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        log.exception("purchase_order_receive_failed id=%s", po_id)
        raise StoreError(f"Could not receive purchase order {po_id}; nothing was applied.") from exc
    except Exception:
        db.rollback()
        log.exception("purchase_order_receive_failed id=%s", po_id)
        raise

    log.info(
        "purchase_order_received id=%s lines=%s units=%s",
        po_id,
        len(lines),
        sum(q for _, q in lines),
    )
    return get_purchase_order(db, po_id)


def list_purchase_orders(db: Session, status: str | None = None) -> list[dict]:
    units = func.coalesce(func.sum(PurchaseOrderItem.quantity), 0)
    stmt = (
        select(
            PurchaseOrder,
            func.count(PurchaseOrderItem.id).label("item_count"),
            units.label("total_units"),
        )
        .outerjoin(PurchaseOrderItem, PurchaseOrderItem.purchase_order_id == PurchaseOrder.id)
        .group_by(PurchaseOrder.id)
        .order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.id.desc())
    )
    if status:
        stmt = stmt.where(PurchaseOrder.status == status)

    rows = []
    for po, item_count, total_units in db.execute(stmt).all():
        if item_count == 0 and po.product_id is not None:
            item_count, total_units = 1, int(po.quantity or 0)
        rows.append(
            {
                "id": po.id,
                "status": po.status,
                "supplier_id": po.supplier_id,
                "product_id": po.product_id,
                "quantity": po.quantity,
                "expected_date": po.expected_date,
                "created_at": po.created_at,
                "received_at": po.received_at,
                "item_count": int(item_count),
                "total_units": int(total_units),
            }
        )
    return rows


def purchase_order_items(db: Session, po_id: int) -> list[dict]:
    po = get_purchase_order(db, po_id)
    lines = receipt_lines(po)
    products = {
        p.id: p
        for p in db.execute(select(Product).where(Product.id.in_([pid for pid, _ in lines]))).scalars()
    }
    ids = [it.id for it in po.items] or [None] * len(lines)
    return [
        {
            "id": line_id,
            "purchase_order_id": po.id,
            "product_id": pid,
            "sku": products[pid].sku if pid in products else None,
            "name": products[pid].name if pid in products else None,
            "quantity": qty,
        }
        for line_id, (pid, qty) in zip(ids, lines)
    ]


def intelligence(db: Session, today: date | None = None) -> list[dict]:
    """Delivery risk for every order that has not been received yet."""
    today = today or date.today()
    at_risk_days = get_settings().at_risk_days
    rows = []
    for po in list_purchase_orders(db):
        if po["status"] == RECEIVED:
            continue
        risk, days_until = planning.po_risk(po["expected_date"], today, at_risk_days)
        rows.append(
            {
                "id": po["id"],
                "status": po["status"],
                "supplier_id": po["supplier_id"],
                "expected_date": po["expected_date"],
                "days_until": days_until,
                "risk": risk,
                "total_units": po["total_units"],
            }
        )
    rows.sort(key=lambda r: (r["days_until"] is None, r["days_until"] if r["days_until"] is not None else 0))
    return rows
