from fastapi import FastAPI, Request
import asyncio
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fintrack.core.config import settings
from fintrack.core.errors import NotFoundError, ValidationError
from fintrack.api.routes.auth import router as auth_router
from fintrack.api.routes.accounts import router as accounts_router
from fintrack.api.routes.entries import router as entries_router
from fintrack.api.routes.obligations import router as obligations_router
from fintrack.api.routes.installments import router as installments_router
from fintrack.api.routes.transfers import router as transfers_router
from fintrack.api.routes.budget import router as budget_router
from fintrack.api.routes.reports import router as reports_router
from fintrack.api.routes.audit import router as audit_router
from fintrack.services.installment_sync import installment_sync_loop

app = FastAPI()

origins = [o.strip() for o in (settings.cors_origins or "").split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(ValidationError)
async def _validation_error(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": exc.code})

@app.exception_handler(NotFoundError)
async def _not_found(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": exc.code})

@app.get("/health")
@app.get("/api/health")
def health():
    return {"status": "ok"}

app.include_router(auth_router)
app.include_router(accounts_router)
app.include_router(entries_router)
app.include_router(obligations_router)
app.include_router(installments_router)
app.include_router(transfers_router)
app.include_router(budget_router)
app.include_router(reports_router)
app.include_router(audit_router)

@app.on_event("startup")
async def _start_installment_sync():
    if getattr(settings, "installment_sync_enabled", True):
        asyncio.create_task(installment_sync_loop())
