import logging
from dataclasses import asdict

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from intavia.api.routes import (
    auth,
    billing,
    billing_webhook,
    candidates,
    contract_offers,
    health,
    interviews,
    monitoring,
    notifications,
    storage,
    teams,
)
from intavia.core.config import get_settings
from intavia.core.errors import AppError
from intavia.core.logging_config import sanitize_log_data, setup_logging

settings = get_settings()
setup_logging(settings.log_level, settings.log_dir)

logger = logging.getLogger(__name__)
logger.info(f"Starting {settings.app_name} API with settings {sanitize_log_data(asdict(settings))}")


# ============================================
# ✅ FASTAPI APP INIT
# ============================================

app = FastAPI(title="Intavia API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        settings.app_base_url,
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH"],
    allow_headers=["Authorization", "Content-Type", "Stripe-Signature"],
)


# ============================================
# ✅ ERROR ENVELOPE
# ============================================

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{field}: {first.get('msg')}" if field else (first.get("msg") or "Invalid request")
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": message, "code": "validation_error"},
    )


# ============================================
# ✅ REGISTER ALL ROUTERS
# ============================================

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(candidates.router)
app.include_router(contract_offers.router)
app.include_router(interviews.router)
app.include_router(teams.router)
app.include_router(notifications.router)
app.include_router(billing.router)
app.include_router(billing_webhook.router)
app.include_router(monitoring.router)
app.include_router(storage.router)


@app.get("/")
def root():
    return {"status": "Intavia API running"}
