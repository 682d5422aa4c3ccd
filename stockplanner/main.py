import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from stockplanner.config import get_settings
from stockplanner.db.migrations import run_migrations
from stockplanner.db.session import engine
from stockplanner.errors import PlannerError
from stockplanner.logging_config import setup_logging
from stockplanner.routers.dashboard_router import router as dashboard_router
from stockplanner.routers.import_router import router as import_router
from stockplanner.routers.inventory_router import router as inventory_router
from stockplanner.routers.products_router import router as products_router
from stockplanner.routers.purchase_orders_router import router as purchase_orders_router
from stockplanner.routers.sales_router import router as sales_router
from stockplanner.routers.suppliers_router import router as suppliers_router

log = logging.getLogger("stockplanner.web")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_file)
    revision = run_migrations(engine)
    log.info("startup schema_revision=%s", revision)
    yield
    engine.dispose()


app = FastAPI(title="Stock Planner API v1", lifespan=lifespan)


@app.exception_handler(PlannerError)
async def planner_error_handler(request: Request, exc: PlannerError):
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc), "code": exc.code})


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    log.error("store_failure path=%s method=%s", request.url.path, request.method, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Store failure, retry later", "code": "STORE_FAILURE"})


@app.get("/")
def root():
    return {"ok": True, "service": "stockplanner"}


app.include_router(products_router, prefix="/products", tags=["products"])
app.include_router(sales_router, prefix="/sales", tags=["sales"])
app.include_router(suppliers_router, prefix="/suppliers", tags=["suppliers"])
app.include_router(inventory_router, prefix="/inventory", tags=["inventory"])
app.include_router(purchase_orders_router, prefix="/purchase-orders", tags=["purchase-orders"])
app.include_router(dashboard_router, prefix="/dashboard", tags=["dashboard"])
app.include_router(import_router, prefix="/import", tags=["import"])
