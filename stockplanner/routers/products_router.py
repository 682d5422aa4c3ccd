import logging

from fastapi import APIRouter, Depends
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from stockplanner.db.models import Product, Supplier
from stockplanner.db.session import get_db
from stockplanner.errors import ConflictError, NotFoundError
from stockplanner.schemas import ImageUpdate, ProductCreate, ProductOut, ProductUpdate, StockUpdate

router = APIRouter()
log = logging.getLogger("stockplanner.products")


def get_product_or_404(db: Session, product_id: int) -> Product:
    product = db.get(Product, product_id)
    if product is None:
        raise NotFoundError(f"Product {product_id} not found")
    return product


def _check_supplier(db: Session, supplier_id: int | None) -> None:
    if supplier_id is not None and db.get(Supplier, supplier_id) is None:
        raise NotFoundError(f"Supplier {supplier_id} not found")


@router.post("", response_model=ProductOut)
def create_product(body: ProductCreate, db: Session = Depends(get_db)):
    _check_supplier(db, body.supplier_id)
    product = Product(**body.model_dump())
    db.add(product)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(f"SKU {body.sku} already exists")
    db.refresh(product)
    return product


@router.get("", response_model=list[ProductOut])
def list_products(db: Session = Depends(get_db)):
    return db.execute(select(Product).order_by(Product.id)).scalars().all()


# declared before /{product_id} so "images" is not taken for an id
@router.patch("/images")
def bulk_update_images(body: list[dict], db: Session = Depends(get_db)):
    results = []
    updated = 0
    for idx, raw in enumerate(body):
        try:
            row = ImageUpdate.model_validate(raw)
        except PydanticValidationError:
            results.append({"row": idx, "ok": False, "error": "INVALID_INPUT"})
            continue
        stmt = update(Product).values(image_url=row.image_url)
        if row.product_id is not None:
            stmt = stmt.where(Product.id == row.product_id)
        else:
            stmt = stmt.where(Product.sku == row.sku.strip())
        try:
            count = db.execute(stmt.execution_options(synchronize_session=False)).rowcount
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            log.warning("image_update_failed row=%s error=%s", idx, e)
            results.append({"row": idx, "ok": False, "error": "STORE_FAILURE"})
            continue
        if count:
            updated += 1
            results.append({"row": idx, "ok": True})
        else:
            results.append({"row": idx, "ok": False, "error": "NOT_FOUND"})
    return {"updated": updated, "total": len(body), "results": results}


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: int, db: Session = Depends(get_db)):
    return get_product_or_404(db, product_id)


@router.patch("/{product_id}/stock", response_model=ProductOut)
def update_stock(product_id: int, body: StockUpdate, db: Session = Depends(get_db)):
    product = get_product_or_404(db, product_id)
    product.stock = body.stock
    db.commit()
    db.refresh(product)
    return product


@router.patch("/{product_id}", response_model=ProductOut)
def update_product(product_id: int, body: ProductUpdate, db: Session = Depends(get_db)):
    product = get_product_or_404(db, product_id)
    changes = body.model_dump(exclude_unset=True)
    if "supplier_id" in changes:
        _check_supplier(db, changes["supplier_id"])
    for key, value in changes.items():
        setattr(product, key, value)
    db.commit()
    db.refresh(product)
    return product
