from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from stockplanner.db.session import get_db
from stockplanner.services import metrics, planning, purchase_orders

router = APIRouter()


@router.get("/kpis")
def get_kpis(days: int = Query(default=30, ge=1, le=365), db: Session = Depends(get_db)):
    snapshots = metrics.snapshot_products(db, days)
    outstanding = purchase_orders.intelligence(db, today=date.today())

    return {
        "window_days": days,
        "products": len(snapshots),
        "units": sum(s.units_sold for s in snapshots),
        "low_stock_skus": sum(1 for s in snapshots if s.stock <= int(s.product.reorder_point)),
        "order_now_skus": sum(1 for s in snapshots if s.status == planning.ORDER_NOW),
        "order_soon_skus": sum(1 for s in snapshots if s.status == planning.ORDER_SOON),
        "open_purchase_orders": len(outstanding),
        "late_purchase_orders": sum(1 for po in outstanding if po["risk"] == planning.LATE),
    }


@router.get("/alerts")
def get_alerts(
    days: int = Query(default=30, ge=1, le=365),
    limit: int = Query(default=25, ge=1, le=200),
    db: Session = Depends(get_db),
):
    alerts = []
    for s in metrics.snapshot_products(db, days):
        low_stock = s.stock <= int(s.product.reorder_point)
        issue = None
        if s.status == planning.ORDER_NOW:
            issue = f"Stockout risk in ~{s.days_of_stock:.1f} days (lead {s.lead_time_days}d)"
        elif s.status == planning.ORDER_SOON:
            issue = f"Stock covers ~{s.days_of_stock:.1f} days, under 1.5x lead time"
        elif low_stock:
            issue = "Low stock (below reorder point)"

        if issue:
            alerts.append({
                "sku": s.product.sku,
                "name": s.product.name,
                "issue": issue,
                "status": s.status,
                "stock": s.stock,
                "reorder_point": int(s.product.reorder_point),
                "lead_time_days": s.lead_time_days,
                "daily_velocity": s.daily_velocity,
                "days_of_stock": None if s.days_of_stock is None else round(s.days_of_stock, 1),
                "action": "Create PO",
            })

    # no runway figure (no sales) sorts last
    alerts.sort(key=lambda a: (a["days_of_stock"] is None, a["days_of_stock"] or 0.0))
    return {"window_days": days, "alerts": alerts[:limit]}
