import hmac
import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from config import settings
from database import engine, Base

# --- IMPORT ROUTERS (APIs) ---
from routers import dashboard, students, fee_ledger, bulk_import

# --- IMPORT MODELS (tables register on Base) ---
from models.students import Student, StudentInstallment
from models.courses import CourseConfig
from models.stats import AggregateStats

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# --- CREATE DATABASE TABLES ---
Base.metadata.create_all(bind=engine)

app = FastAPI(title="Coaching Centre Fee Ledger")

# ==========================================
# ✅ ADMIN TOKEN MIDDLEWARE
# ==========================================
@app.middleware("http")
async def admin_token_middleware(request: Request, call_next):
    # Token set nahi hai to guard band (local setup)
    if settings.ADMIN_TOKEN and request.url.path.startswith("/api/"):
        token = request.headers.get("X-Admin-Token") or request.cookies.get("user_token")
        if not hmac.compare_digest((token or "").encode(), settings.ADMIN_TOKEN.encode()):
            return JSONResponse(status_code=401, content={"detail": "Admin access required"})

    response = await call_next(request)
    return response

# ==========================================
# ✅ CORS MIDDLEWARE (Admin frontend allowed)
# ==========================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- REGISTER ROUTERS ---
app.include_router(dashboard.router)
app.include_router(students.router)
app.include_router(fee_ledger.router)
app.include_router(bulk_import.router)


@app.get("/")
def health():
    return {"status": "ok", "service": app.title}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=settings.HOST, port=settings.PORT, reload=settings.RELOAD)
