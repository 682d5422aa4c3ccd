from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from fractions import Fraction
from typing import Iterable

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session, selectinload

from stockplanner.config import get_settings
from stockplanner.db.models import Product, Sale
from stockplanner.errors import ValidationError
from stockplanner.services import planning


@dataclass(frozen=True)
class ProductSnapshot:
    product: Product
    lead_time_days: int
    window_days: int
    units_sold: int
    velocity: Fraction
    runway: Fraction | None
    status: str
    # extra windows keyed by window length, filled by multi-window snapshots
    velocities: dict[int, Fraction] = field(default_factory=dict)

    @property
    def stock(self) -> int:
        return int(self.product.stock)

    @property
    def daily_velocity(self) -> float:
        return float(self.velocity)

    @property
    def days_of_stock(self) -> float | None:
        return None if self.runway is None else float(self.runway)


def effective_lead_time(product: Product, default: int | None = None) -> int:
    if product.lead_time_days is not None:
        return int(product.lead_time_days)
    if product.supplier is not None and product.supplier.lead_time_days is not None:
        return int(product.supplier.lead_time_days)
    return int(default if default is not None else get_settings().default_lead_time_days)


def windowed_units(db: Session, windows: Iterable[int], today: date | None = None) -> dict[int, dict[int, int]]:
    """Units sold per product for each trailing window ``[today - N days, today]``.

    Returns ``{product_id: {N: units}}``; products with no sales are absent.
    """
    windows = sorted(set(windows))
    for w in windows:
        if w <= 0:
            raise ValidationError("window days must be a positive integer")
    today = today or date.today()
    cutoffs = {w: today - timedelta(days=w) for w in windows}

    columns = [
        func.coalesce(func.sum(case((Sale.sold_at >= cutoffs[w], Sale.quantity), else_=0)), 0).label(f"w{w}")
        for w in windows
    ]
    stmt = (
        select(Sale.product_id, *columns)
        .where(Sale.sold_at >= cutoffs[windows[-1]])
        .where(Sale.sold_at <= today)
        .group_by(Sale.product_id)
    )

    out: dict[int, dict[int, int]] = {}
    for row in db.execute(stmt).all():
        out[int(row.product_id)] = {w: int(getattr(row, f"w{w}")) for w in windows}
    return out


def snapshot_products(
    db: Session,
    days: int | None = None,
    today: date | None = None,
    extra_windows: Iterable[int] = (),
    product_ids: Iterable[int] | None = None,
) -> list[ProductSnapshot]:
    """Per-product velocity, runway and reorder status over a trailing window.

    Every reporting endpoint builds on this so that the numbers agree.
    """
    settings = get_settings()
    days = days or settings.velocity_window_days
    windows = {days, *extra_windows}
    units = windowed_units(db, windows, today=today)

    stmt = select(Product).options(selectinload(Product.supplier)).order_by(Product.id)
    if product_ids is not None:
        stmt = stmt.where(Product.id.in_(list(product_ids)))

    snapshots = []
    for p in db.execute(stmt).scalars():
        sold = units.get(p.id, {})
        velocity = planning.daily_velocity(sold.get(days, 0), days)
        runway = planning.days_of_stock(int(p.stock), velocity)
        lead = effective_lead_time(p, settings.default_lead_time_days)
        snapshots.append(
            ProductSnapshot(
                product=p,
                lead_time_days=lead,
                window_days=days,
                units_sold=sold.get(days, 0),
                velocity=velocity,
                runway=runway,
                status=planning.reorder_status(runway, lead),
                velocities={w: planning.daily_velocity(sold.get(w, 0), w) for w in windows},
            )
        )
    return snapshots


def product_fields(s: ProductSnapshot) -> dict:
    p = s.product
    return {"id": p.id, "sku": p.sku, "name": p.name, "stock": int(p.stock)}


def velocity_rows(db: Session, days: int | None, today: date | None = None) -> list[dict]:
    return [
        {
            **product_fields(s),
            "window_days": s.window_days,
            "units_sold": s.units_sold,
            "daily_velocity": s.daily_velocity,
            "days_of_stock": s.days_of_stock,
        }
        for s in snapshot_products(db, days, today=today)
    ]


def velocity_window_rows(db: Session, today: date | None = None) -> list[dict]:
    windows = planning.VELOCITY_WINDOWS
    rows = []
    for s in snapshot_products(db, windows[0], today=today, extra_windows=windows):
        row = product_fields(s)
        for w in windows:
            v = s.velocities[w]
            runway = planning.days_of_stock(s.stock, v)
            row[f"daily_velocity_{w}"] = float(v)
            row[f"days_of_stock_{w}"] = None if runway is None else float(runway)
        rows.append(row)
    return rows


def reorder_status_rows(db: Session, days: int | None, today: date | None = None) -> list[dict]:
    return [
        {
            **product_fields(s),
            "reorder_point": int(s.product.reorder_point),
            "lead_time_days": s.lead_time_days,
            "daily_velocity": s.daily_velocity,
            "days_of_stock": s.days_of_stock,
            "status": s.status,
        }
        for s in snapshot_products(db, days, today=today)
    ]


def lead_time_quantity_rows(
    db: Session,
    days: int | None,
    lead_time_days: int | None = None,
    buffer_days: int | None = None,
    today: date | None = None,
) -> list[dict]:
    """Lead-time based quantities; ``lead_time_days=None`` uses each product's own lead time."""
    buffer_days = get_settings().buffer_days if buffer_days is None else buffer_days
    rows = []
    for s in snapshot_products(db, days, today=today):
        lead = s.lead_time_days if lead_time_days is None else lead_time_days
        qty = planning.lead_time_reorder_qty(s.stock, s.velocity, lead, buffer_days)
        if qty <= 0:
            continue
        rows.append(
            {
                **product_fields(s),
                "daily_velocity": s.daily_velocity,
                "lead_time_days": lead,
                "buffer_days": buffer_days,
                "suggested_qty": qty,
            }
        )
    return rows


def coverage_suggestion_rows(
    db: Session,
    days: int | None,
    target_days: int | None = None,
    today: date | None = None,
    product_ids: Iterable[int] | None = None,
) -> list[dict]:
    target_days = get_settings().target_days if target_days is None else target_days
    rows = []
    for s in snapshot_products(db, days, today=today, product_ids=product_ids):
        qty = planning.coverage_reorder_qty(s.stock, s.velocity, target_days)
        if qty <= 0:
            continue
        rows.append(
            {
                "product_id": s.product.id,
                "sku": s.product.sku,
                "name": s.product.name,
                "stock": s.stock,
                "daily_velocity": s.daily_velocity,
                "days_of_stock": s.days_of_stock,
                "target_days": target_days,
                "suggested_qty": qty,
            }
        )
    return rows
