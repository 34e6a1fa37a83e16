# jewelbook/main.py
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from jewelbook import config
from jewelbook.auth import require_user
from jewelbook.db import init_db
from jewelbook.routers import auth, customers, dashboard, inventory, invoices, item_groups, reminders

config.configure_logging()

app = FastAPI(title="Jewelbook - Jewellery Shop Ledger & Billing", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def on_startup():
    init_db()
    auth.ensure_default_admin()


protected = [Depends(require_user)]

# Routers
app.include_router(auth.router, prefix="/auth", tags=["Auth"])
app.include_router(customers.router, prefix="/customers", tags=["Customers"], dependencies=protected)
app.include_router(item_groups.router, prefix="/item-groups", tags=["Inventory"], dependencies=protected)
app.include_router(inventory.router, prefix="/items", tags=["Inventory"], dependencies=protected)
app.include_router(invoices.router, prefix="/invoices", tags=["Invoices"], dependencies=protected)
app.include_router(reminders.router, prefix="/reminders", tags=["Reminders"], dependencies=protected)
app.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"], dependencies=protected)


@app.get("/")
def home():
    return {"message": "Jewelbook API", "version": app.version}


@app.get("/health")
def health():
    return {"status": "OK"}
