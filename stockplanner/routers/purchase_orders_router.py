from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from stockplanner.db.session import get_db
from stockplanner.schemas import PurchaseOrderCreate, PurchaseOrderOut, SuggestedOrderCreate
from stockplanner.services import purchase_orders

router = APIRouter()


@router.post("", response_model=PurchaseOrderOut)
def create_purchase_order(body: PurchaseOrderCreate, db: Session = Depends(get_db)):
    return purchase_orders.create_purchase_order(
        db,
        product_id=body.product_id,
        quantity=body.quantity,
        supplier_id=body.supplier_id,
        items=[it.model_dump() for it in body.items],
        expected_date=body.expected_date,
        status=body.status,
    )


@router.post("/from-suggestion", response_model=PurchaseOrderOut)
def create_from_suggestion(body: SuggestedOrderCreate, db: Session = Depends(get_db)):
    return purchase_orders.create_from_suggestion(db, body.product_id, days=body.days, target_days=body.target_days)


@router.get("")
def list_purchase_orders(
    status: str | None = Query(default=None, pattern="^(draft|open|received)$"),
    db: Session = Depends(get_db),
):
    return purchase_orders.list_purchase_orders(db, status=status)


@router.get("/intelligence")
def get_intelligence(db: Session = Depends(get_db)):
    return purchase_orders.intelligence(db)


@router.get("/{po_id}", response_model=PurchaseOrderOut)
def get_purchase_order(po_id: int, db: Session = Depends(get_db)):
    return purchase_orders.get_purchase_order(db, po_id)


@router.get("/{po_id}/items")
def get_purchase_order_items(po_id: int, db: Session = Depends(get_db)):
    return purchase_orders.purchase_order_items(db, po_id)


@router.post("/{po_id}/confirm", response_model=PurchaseOrderOut)
def confirm_purchase_order(po_id: int, db: Session = Depends(get_db)):
    return purchase_orders.confirm_purchase_order(db, po_id)


@router.post("/{po_id}/receive", response_model=PurchaseOrderOut)
def receive_purchase_order(po_id: int, db: Session = Depends(get_db)):
    return purchase_orders.receive_purchase_order(db, po_id)
