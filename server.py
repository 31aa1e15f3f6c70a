# FastAPI Server for the Campaign Ledger

from fastapi import FastAPI, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from config.app_config import ADMIN_EMAIL
from database.config import init_db, SessionLocal
from database.models import User, UserType
from auth.dependencies import get_current_user
from services.errors import LedgerError

# Import routers
from routers.campaigns import router as campaigns_router
from routers.invitations import router as invitations_router
from routers.negotiations import router as negotiations_router
from routers.lifecycle import router as lifecycle_router
from routers.notifications import router as notifications_router

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Campaign Ledger API",
    description="Campaign budgets, creator invitations, negotiations and lifecycle",
    version="1.0.0"
)


@app.on_event("startup")
def startup_event():
    # Initialize database tables using SQLAlchemy create_all
    init_db()

    # Seed the admin account that runs lifecycle sweeps
    if not ADMIN_EMAIL:
        return
    db = SessionLocal()
    try:
        admin = db.query(User).filter(User.email == ADMIN_EMAIL).first()
        if not admin:
            logger.info(f"Seeding admin user: {ADMIN_EMAIL}")
            db.add(User(email=ADMIN_EMAIL, name="Campaign Ledger Admin", user_type=UserType.ADMIN))
            db.commit()
    finally:
        db.close()


# CORS Setup - Allow all origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,  # Required when using "*"
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.kind}: {exc.description}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.kind}: {exc.description}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.to_dict()},
    )


# ============================================================================
# ROUTERS (v1 API)
# ============================================================================
app.include_router(campaigns_router, prefix="/api/v1")
app.include_router(invitations_router, prefix="/api/v1")
app.include_router(negotiations_router, prefix="/api/v1")
app.include_router(lifecycle_router, prefix="/api/v1")
app.include_router(notifications_router, prefix="/api/v1")


# Health Check
@app.get("/")
def root():
    return {
        "message": "Campaign Ledger API",
        "version": "1.0.0",
        "status": "running"
    }


@app.get("/health")
def health_check():
    return {"status": "healthy"}


@app.get("/api/v1/me")
def get_current_user_info(current_user: User = Depends(get_current_user)):
    return {
        "id": current_user.id,
        "name": current_user.name,
        "email": current_user.email,
        "user_type": current_user.user_type.value if current_user.user_type else None,
        "created_at": current_user.created_at,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
