import pandas as pd
from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy import select
from sqlalchemy.orm import Session

from stockplanner.db.models import Product
from stockplanner.db.session import get_db
from stockplanner.schemas import ProductOut
from stockplanner.services import metrics

router = APIRouter()

SUGGESTION_COLUMNS = [
    "product_id", "sku", "name", "stock", "daily_velocity", "days_of_stock", "target_days", "suggested_qty",
]


@router.get("/reorder", response_model=list[ProductOut])
def needs_reorder(db: Session = Depends(get_db)):
    # plain threshold filter, not velocity-aware
    stmt = select(Product).where(Product.stock <= Product.reorder_point).order_by(Product.id)
    return db.execute(stmt).scalars().all()


@router.get("/velocity")
def get_velocity(days: int | None = Query(default=None, ge=1, le=365), db: Session = Depends(get_db)):
    return metrics.velocity_rows(db, days)


@router.get("/velocity/windows")
def get_velocity_windows(db: Session = Depends(get_db)):
    """Velocity and runway over the 7, 14, 30 and 90 day windows at once."""
    return metrics.velocity_window_rows(db)


@router.get("/reorder-status")
def get_reorder_status(days: int | None = Query(default=None, ge=1, le=365), db: Session = Depends(get_db)):
    return metrics.reorder_status_rows(db, days)


@router.get("/reorder-quantity")
def get_reorder_quantity(
    days: int | None = Query(default=None, ge=1, le=365),
    lead_time_days: int | None = Query(default=None, ge=0, description="Overrides each product's lead time"),
    buffer_days: int | None = Query(default=None, ge=0),
    db: Session = Depends(get_db),
):
    return metrics.lead_time_quantity_rows(db, days, lead_time_days=lead_time_days, buffer_days=buffer_days)


@router.get("/reorder-suggestions")
def get_reorder_suggestions(
    days: int | None = Query(default=None, ge=1, le=365),
    target_days: int | None = Query(default=None, ge=1, le=365),
    db: Session = Depends(get_db),
):
    return metrics.coverage_suggestion_rows(db, days, target_days=target_days)


@router.get("/reorder-suggestions/export")
def export_reorder_suggestions(
    days: int | None = Query(default=None, ge=1, le=365),
    target_days: int | None = Query(default=None, ge=1, le=365),
    db: Session = Depends(get_db),
):
    rows = metrics.coverage_suggestion_rows(db, days, target_days=target_days)
    df = pd.DataFrame(rows, columns=SUGGESTION_COLUMNS)
    return Response(
        content=df.to_csv(index=False),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="reorder_suggestions.csv"'},
    )
