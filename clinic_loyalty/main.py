# clinic_loyalty/main.py
import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from clinic_loyalty.middleware.errors import install_error_handlers
from clinic_loyalty.routes.health import router as health_router
from clinic_loyalty.routes.ledger import router as ledger_router
from clinic_loyalty.services.admin.logger import log_request_response
from clinic_loyalty.settings import settings

logging.basicConfig(
    level=getattr(logging, settings.LEDGER_LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
log = logging.getLogger("clinic_loyalty.main")

app = FastAPI(
    title="Clinic Loyalty Ledger",
    version=settings.CLINIC_LOYALTY_VERSION,
    description="Patient wallets, tiers and household points for the clinic",
)

# -------------------------------------------------------------------
# Error handling (stable envelopes, no stack leaks)
# -------------------------------------------------------------------
install_error_handlers(app)

# -------------------------------------------------------------------
# CORS (front desk / patient app, controlled)
# -------------------------------------------------------------------
if settings.CORS_MODE == "allowlist":
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )


# -------------------------------------------------------------------
# Request logging
# -------------------------------------------------------------------
@app.middleware("http")
async def request_logging(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    log_request_response(request, response, start)
    return response


# -------------------------------------------------------------------
# Routers
# -------------------------------------------------------------------
app.include_router(health_router)
app.include_router(ledger_router)


# -------------------------------------------------------------------
# Root
# -------------------------------------------------------------------
@app.get("/")
async def root():
    return {
        "status": "Clinic Loyalty Online",
        "product": "clinic-loyalty-ledger",
        "routes": [
            "/health",
            "/ledger",
        ],
    }
