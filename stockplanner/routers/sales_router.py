from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from stockplanner.db.models import Product, Sale
from stockplanner.db.session import get_db
from stockplanner.errors import NotFoundError
from stockplanner.schemas import SaleCreate, SaleOut

router = APIRouter()


@router.post("", response_model=SaleOut)
def record_sale(body: SaleCreate, db: Session = Depends(get_db)):
    # append-only: a repeated submission records a second sale
    if db.get(Product, body.product_id) is None:
        raise NotFoundError(f"Product {body.product_id} not found")
    sale = Sale(product_id=body.product_id, quantity=body.quantity, sold_at=body.sold_at or date.today())
    db.add(sale)
    db.commit()
    db.refresh(sale)
    return sale


@router.get("", response_model=list[SaleOut])
def list_sales(
    product_id: int | None = Query(default=None),
    limit: int = Query(default=200, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    stmt = select(Sale).order_by(Sale.sold_at.desc(), Sale.id.desc()).limit(limit)
    if product_id is not None:
        stmt = stmt.where(Sale.product_id == product_id)
    return db.execute(stmt).scalars().all()
