"""End-to-end checks through the HTTP layer."""

from __future__ import annotations

import io
from datetime import date, timedelta

import pandas as pd
from openpyxl import Workbook

from stockplanner.config import get_settings

XLSX_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def create_product(client, **overrides):
    body = {"sku": "SKU-A", "name": "Widget", "stock": 100, "reorder_point": 50}
    body.update(overrides)
    resp = client.post("/products", json=body)
    assert resp.status_code == 200, resp.text
    return resp.json()


def test_root(client):
    assert client.get("/").json()["ok"] is True


def test_create_and_update_product(client):
    p = create_product(client)
    assert p["stock"] == 100
    assert p["lead_time_days"] is None

    resp = client.patch(f"/products/{p['id']}/stock", json={"stock": 40})
    assert resp.json()["stock"] == 40

    resp = client.patch(f"/products/{p['id']}", json={"reorder_point": 10, "lead_time_days": 7})
    body = resp.json()
    assert body["reorder_point"] == 10
    assert body["lead_time_days"] == 7
    assert body["name"] == "Widget"


def test_duplicate_sku_conflicts(client):
    create_product(client)
    resp = client.post("/products", json={"sku": "SKU-A", "name": "Again"})
    assert resp.status_code == 409
    assert resp.json()["code"] == "CONFLICT"


def test_unknown_product_is_404(client):
    resp = client.patch("/products/999/stock", json={"stock": 1})
    assert resp.status_code == 404
    assert resp.json()["code"] == "NOT_FOUND"


def test_reorder_list_uses_threshold(client):
    above = create_product(client, sku="A", stock=100, reorder_point=50)
    equal = create_product(client, sku="B", stock=50, reorder_point=50)

    ids = [p["id"] for p in client.get("/inventory/reorder").json()]
    assert ids == [equal["id"]]

    client.patch(f"/products/{above['id']}/stock", json={"stock": 10})
    ids = [p["id"] for p in client.get("/inventory/reorder").json()]
    assert ids == [above["id"], equal["id"]]


def test_record_sale_validation(client):
    p = create_product(client)

    assert client.post("/sales", json={"product_id": p["id"], "quantity": "abc"}).status_code == 422
    assert client.post("/sales", json={"product_id": p["id"], "quantity": 0}).status_code == 422
    assert client.post("/sales", json={"product_id": 999, "quantity": 1}).status_code == 404

    resp = client.post("/sales", json={"product_id": p["id"], "quantity": 3})
    assert resp.status_code == 200
    assert resp.json()["sold_at"] == date.today().isoformat()


def test_duplicate_sales_are_both_recorded(client):
    p = create_product(client)
    for _ in range(2):
        client.post("/sales", json={"product_id": p["id"], "quantity": 2})
    assert len(client.get("/sales", params={"product_id": p["id"]}).json()) == 2


def test_velocity_and_status(client):
    p = create_product(client, stock=60)
    client.post("/sales", json={"product_id": p["id"], "quantity": 90, "sold_at": (date.today() - timedelta(days=5)).isoformat()})

    [row] = client.get("/inventory/velocity", params={"days": 30}).json()
    assert row["daily_velocity"] == 3
    assert row["days_of_stock"] == 20

    [status] = client.get("/inventory/reorder-status").json()
    assert status["status"] == "ORDER NOW"

    assert client.get("/inventory/velocity", params={"days": 0}).status_code == 422


def test_velocity_windows_endpoint(client):
    create_product(client)
    [row] = client.get("/inventory/velocity/windows").json()
    for w in (7, 14, 30, 90):
        assert row[f"daily_velocity_{w}"] == 0
        assert row[f"days_of_stock_{w}"] is None


def test_reorder_quantity_endpoint(client):
    p = create_product(client, stock=50)
    client.post("/sales", json={"product_id": p["id"], "quantity": 60})

    rows = client.get("/inventory/reorder-quantity", params={"lead_time_days": 30, "buffer_days": 14}).json()
    assert rows[0]["suggested_qty"] == 38


def test_suggestions_and_csv_export(client):
    selling = create_product(client, sku="SELL", stock=10)
    create_product(client, sku="IDLE", stock=0)
    client.post("/sales", json={"product_id": selling["id"], "quantity": 30})

    rows = client.get("/inventory/reorder-suggestions", params={"target_days": 90}).json()
    assert [(r["sku"], r["suggested_qty"]) for r in rows] == [("SELL", 80)]

    resp = client.get("/inventory/reorder-suggestions/export", params={"target_days": 90})
    assert resp.headers["content-type"].startswith("text/csv")
    df = pd.read_csv(io.StringIO(resp.text))
    assert list(df["sku"]) == ["SELL"]
    assert list(df["suggested_qty"]) == [80]


def test_empty_csv_export_has_header(client):
    resp = client.get("/inventory/reorder-suggestions/export")
    assert resp.text.strip().split(",")[0] == "product_id"


def test_purchase_order_flow(client):
    supplier = client.post("/suppliers", json={"name": "Acme", "lead_time_days": 14}).json()
    a = create_product(client, sku="A", stock=1)
    b = create_product(client, sku="B", stock=2)

    resp = client.post(
        "/purchase-orders",
        json={"supplier_id": supplier["id"], "items": [{"product_id": a["id"], "quantity": 5}, {"product_id": b["id"], "quantity": 3}]},
    )
    assert resp.status_code == 200, resp.text
    po = resp.json()
    assert po["status"] == "open"
    assert po["expected_date"] == (date.today() + timedelta(days=14)).isoformat()

    [listed] = client.get("/purchase-orders").json()
    assert listed["item_count"] == 2
    assert listed["total_units"] == 8

    items = client.get(f"/purchase-orders/{po['id']}/items").json()
    assert [(i["sku"], i["quantity"]) for i in items] == [("A", 5), ("B", 3)]

    resp = client.post(f"/purchase-orders/{po['id']}/receive")
    assert resp.status_code == 200
    assert resp.json()["status"] == "received"
    assert client.get(f"/products/{a['id']}").json()["stock"] == 6
    assert client.get(f"/products/{b['id']}").json()["stock"] == 5

    resp = client.post(f"/purchase-orders/{po['id']}/receive")
    assert resp.status_code == 409
    assert client.get(f"/products/{a['id']}").json()["stock"] == 6

    assert client.get("/purchase-orders", params={"status": "received"}).json()[0]["id"] == po["id"]
    assert client.get("/purchase-orders", params={"status": "open"}).json() == []


def test_purchase_order_input_errors(client):
    assert client.post("/purchase-orders", json={}).status_code == 400
    assert client.post("/purchase-orders", json={"product_id": 1, "quantity": "many"}).status_code == 422
    assert client.post("/purchase-orders", json={"product_id": 404, "quantity": 1}).status_code == 404
    assert client.post("/purchase-orders/404/receive").status_code == 404


def test_draft_confirm_and_intelligence(client):
    p = create_product(client)
    late = client.post(
        "/purchase-orders",
        json={"product_id": p["id"], "quantity": 2, "status": "draft", "expected_date": (date.today() - timedelta(days=1)).isoformat()},
    ).json()
    assert late["status"] == "draft"

    assert client.post(f"/purchase-orders/{late['id']}/confirm").json()["status"] == "open"
    assert client.post(f"/purchase-orders/{late['id']}/confirm").status_code == 409

    [row] = client.get("/purchase-orders/intelligence").json()
    assert row["risk"] == "LATE"
    assert row["days_until"] == -1


def test_order_from_suggestion(client):
    p = create_product(client, stock=10)
    client.post("/sales", json={"product_id": p["id"], "quantity": 30})

    resp = client.post("/purchase-orders/from-suggestion", json={"product_id": p["id"], "target_days": 60})
    assert resp.status_code == 200
    assert resp.json()["quantity"] == 50

    idle = create_product(client, sku="IDLE", stock=10)
    resp = client.post("/purchase-orders/from-suggestion", json={"product_id": idle["id"]})
    assert resp.status_code == 400


def test_bulk_image_update_counts_rows(client):
    a = create_product(client, sku="A")
    create_product(client, sku="B")

    resp = client.patch(
        "/products/images",
        json=[
            {"product_id": a["id"], "image_url": "https://img/a.png"},
            {"sku": "B", "image_url": "https://img/b.png"},
            {"sku": "NOPE", "image_url": "https://img/x.png"},
        ],
    )
    body = resp.json()
    assert body["updated"] == 2
    assert body["results"][2] == {"row": 2, "ok": False, "error": "NOT_FOUND"}
    assert client.get(f"/products/{a['id']}").json()["image_url"] == "https://img/a.png"


def test_stock_import_applies_good_rows(client):
    a = create_product(client, sku="A", stock=1, reorder_point=1)
    create_product(client, sku="B", stock=2, reorder_point=2)
    csv = "sku,stock,reorder_point\nA,40,10\nGHOST,5,5\nB,x,3\n"

    resp = client.post("/import/stock", files={"file": ("stock.csv", csv, "text/csv")})
    body = resp.json()

    assert resp.status_code == 200
    assert body["updated"] == 1
    assert body["errors_count"] == 2
    assert {e["code"] for e in body["errors_preview"]} == {"UNKNOWN_SKU", "BAD_INT"}
    assert client.get(f"/products/{a['id']}").json()["stock"] == 40

    report = client.get(body["error_report_url"])
    assert report.status_code == 200
    assert "UNKNOWN_SKU" in report.text


def test_stock_import_missing_columns(client):
    resp = client.post("/import/stock", files={"file": ("stock.csv", "sku,stock\nA,1\n", "text/csv")})
    assert resp.status_code == 400

    resp = client.post("/import/stock/validate", files={"file": ("stock.csv", "sku,stock\nA,1\n", "text/csv")})
    assert resp.json()["errors_preview"][0]["code"] == "MISSING_COLUMNS"


def test_stock_import_rejects_other_formats(client):
    resp = client.post("/import/stock", files={"file": ("stock.txt", "hello", "text/plain")})
    assert resp.status_code == 400


def test_dashboard(client):
    p = create_product(client, stock=60, reorder_point=70)
    client.post("/sales", json={"product_id": p["id"], "quantity": 90})

    kpis = client.get("/dashboard/kpis").json()
    assert kpis["units"] == 90
    assert kpis["low_stock_skus"] == 1
    assert kpis["order_now_skus"] == 1

    [alert] = client.get("/dashboard/alerts").json()["alerts"]
    assert alert["status"] == "ORDER NOW"
    assert alert["days_of_stock"] == 20.0


def test_bulk_image_update_reports_invalid_rows(client):
    a = create_product(client, sku="A")

    resp = client.patch(
        "/products/images",
        json=[
            {"product_id": a["id"], "image_url": "https://img/a.png"},
            {"image_url": "https://img/nokey.png"},
        ],
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["updated"] == 1
    assert body["total"] == 2
    assert body["results"] == [
        {"row": 0, "ok": True},
        {"row": 1, "ok": False, "error": "INVALID_INPUT"},
    ]
    assert client.get(f"/products/{a['id']}").json()["image_url"] == "https://img/a.png"


def test_stock_import_reads_xlsx(client):
    a = create_product(client, sku="A", stock=1, reorder_point=1)
    wb = Workbook()
    ws = wb.active
    ws.append(["sku", "stock", "reorder_point"])
    ws.append(["A", 25, 5])
    buf = io.BytesIO()
    wb.save(buf)

    resp = client.post(
        "/import/stock",
        files={"file": ("stock.xlsx", buf.getvalue(), XLSX_TYPE)},
    )

    assert resp.status_code == 200, resp.text
    assert resp.json()["updated"] == 1
    product = client.get(f"/products/{a['id']}").json()
    assert product["stock"] == 25
    assert product["reorder_point"] == 5


def test_suggestion_defaults_come_from_settings(client, monkeypatch):
    monkeypatch.setenv("TARGET_DAYS", "90")
    monkeypatch.setenv("BUFFER_DAYS", "0")
    get_settings.cache_clear()
    p = create_product(client, sku="SELL", stock=10)
    client.post("/sales", json={"product_id": p["id"], "quantity": 30})

    [suggestion] = client.get("/inventory/reorder-suggestions").json()
    assert suggestion["target_days"] == 90
    assert suggestion["suggested_qty"] == 80

    [quantity] = client.get("/inventory/reorder-quantity", params={"lead_time_days": 30}).json()
    assert quantity["buffer_days"] == 0
    assert quantity["suggested_qty"] == 20
