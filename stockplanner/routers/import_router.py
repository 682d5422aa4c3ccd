import logging
import uuid
from pathlib import Path

import pandas as pd
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stockplanner.config import get_settings
from stockplanner.db.models import Product
from stockplanner.db.session import get_db

router = APIRouter()
log = logging.getLogger("stockplanner.import")

REQUIRED_STOCK = {"sku", "stock", "reorder_point"}


def error_dir() -> Path:
    path = Path(get_settings().error_report_dir)
    path.mkdir(parents=True, exist_ok=True)
    return path


def read_table(upload: UploadFile) -> pd.DataFrame:
    name = (upload.filename or "").lower()
    try:
        if name.endswith(".csv"):
            return pd.read_csv(upload.file, dtype={"sku": str})
        if name.endswith(".xlsx"):
            return pd.read_excel(upload.file, dtype={"sku": str}, engine="openpyxl")
    except Exception as e:
        raise HTTPException(status_code=400, detail=f"{upload.filename}: could not read file: {e}")
    raise HTTPException(status_code=400, detail=f"{upload.filename} must be a CSV or XLSX file")


def missing_cols(df: pd.DataFrame, required: set[str]) -> list[str]:
    return sorted(list(required - set(df.columns)))


def add_error(
    errors: list,
    *,
    file: str,
    row: int | None,
    field: str,
    code: str,
    message: str,
    value: str = "",
    suggestion: str = "",
):
    errors.append({
        "file": file,
        "row": row,
        "field": field,
        "code": code,
        "message": message,
        "value": value,
        "suggestion": suggestion,
    })


def write_error_report(errors: list) -> str:
    report_id = uuid.uuid4().hex
    pd.DataFrame(errors).to_csv(error_dir() / f"{report_id}.csv", index=False)
    return report_id


def parse_int(value, *, minimum: int = 0) -> int:
    if pd.isna(value):
        raise ValueError("missing")
    number = float(value)
    if not number.is_integer() or number < minimum:
        raise ValueError(str(value))
    return int(number)


def check_rows(df: pd.DataFrame, filename: str, errors: list) -> list[dict]:
    """Row-level checks; returns the rows that passed, ready to apply."""
    valid = []
    for idx, row in df.iterrows():
        csv_row = int(idx) + 2
        row_ok = True

        sku = "" if pd.isna(row.get("sku")) else str(row.get("sku")).strip()
        if not sku:
            add_error(errors, file=filename, row=csv_row, field="sku", code="REQUIRED",
                      message="sku is required", suggestion="Provide a non-empty sku.")
            row_ok = False

        try:
            stock = parse_int(row["stock"])
        except (TypeError, ValueError):
            add_error(errors, file=filename, row=csv_row, field="stock", code="BAD_INT",
                      message="stock must be an integer >= 0", value=str(row.get("stock", "")))
            row_ok = False

        try:
            reorder_point = parse_int(row["reorder_point"])
        except (TypeError, ValueError):
            add_error(errors, file=filename, row=csv_row, field="reorder_point", code="BAD_INT",
                      message="reorder_point must be an integer >= 0", value=str(row.get("reorder_point", "")))
            row_ok = False

        if row_ok:
            valid.append({"row": csv_row, "sku": sku, "stock": stock, "reorder_point": reorder_point})
    return valid


@router.get("/error-report/{report_id}")
def download_error_report(report_id: str):
    if not report_id.isalnum():
        raise HTTPException(status_code=404, detail="Error report not found")
    path = error_dir() / f"{report_id}.csv"
    if not path.exists():
        raise HTTPException(status_code=404, detail="Error report not found")
    return FileResponse(path, media_type="text/csv", filename="import_error_report.csv")


@router.post("/stock/validate")
async def validate_stock(file: UploadFile = File(...)):
    df = read_table(file)
    errors: list[dict] = []

    missing = missing_cols(df, REQUIRED_STOCK)
    if missing:
        add_error(errors, file=file.filename, row=None, field="*", code="MISSING_COLUMNS",
                  message="Missing required columns", value=",".join(missing), suggestion="Add these columns to header.")
    else:
        check_rows(df, file.filename, errors)

    summary = {"rows": int(len(df))}
    if errors:
        report_id = write_error_report(errors)
        return {
            "ok": False,
            "summary": summary,
            "errors_count": len(errors),
            "error_report_id": report_id,
            "error_report_url": f"/import/error-report/{report_id}",
            "errors_preview": errors[:25],
        }
    return {"ok": True, "summary": summary, "errors_count": 0, "errors_preview": []}


@router.post("/stock")
async def import_stock(file: UploadFile = File(...), db: Session = Depends(get_db)):
    """Apply stock and reorder_point per SKU.

    Each row is committed on its own: a bad row is reported and skipped,
    rows already applied stay applied.
    """
    df = read_table(file)
    missing = missing_cols(df, REQUIRED_STOCK)
    if missing:
        raise HTTPException(status_code=400, detail=f"Missing required columns: {', '.join(missing)}")

    errors: list[dict] = []
    updated = 0
    for item in check_rows(df, file.filename, errors):
        stmt = (
            update(Product)
            .where(Product.sku == item["sku"])
            .values(stock=item["stock"], reorder_point=item["reorder_point"])
            .execution_options(synchronize_session=False)
        )
        try:
            count = db.execute(stmt).rowcount
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            add_error(errors, file=file.filename, row=item["row"], field="*", code="STORE_FAILURE",
                      message="row could not be saved", value=str(e.__class__.__name__))
            continue

        if count:
            updated += 1
        else:
            add_error(errors, file=file.filename, row=item["row"], field="sku", code="UNKNOWN_SKU",
                      message="sku not found in products", value=item["sku"],
                      suggestion="Create the product first or fix the sku.")

    log.info("stock_import file=%s rows=%s updated=%s errors=%s", file.filename, len(df), updated, len(errors))

    result = {
        "ok": not errors,
        "summary": {"rows": int(len(df))},
        "updated": updated,
        "errors_count": len(errors),
        "errors_preview": errors[:25],
    }
    if errors:
        report_id = write_error_report(errors)
        result["error_report_id"] = report_id
        result["error_report_url"] = f"/import/error-report/{report_id}"
    return result
