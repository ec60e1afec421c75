import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import config
from .routers import allocations, health, inventory, items, lots, monthly_inventory, reports, transactions, units, warehouses

logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = FastAPI(title="Stock Ledger API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(items.router)
app.include_router(units.router)
app.include_router(warehouses.router)
app.include_router(lots.router)
app.include_router(inventory.router)
app.include_router(transactions.router)
app.include_router(allocations.router)
app.include_router(monthly_inventory.router)
app.include_router(reports.router)


@app.get("/")
def root():
    return {"status": "ok"}
