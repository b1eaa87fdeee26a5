from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dna.logger import setup_logger
from erp import __version__
from erp.core.config import get_settings
from erp.api.deps import get_dna_cache
from erp.api.routers import purchase_orders, users, health
from erp.api.routers import dna as dna_rules
from erp.api.middleware.request_logging import RequestLoggingMiddleware

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    for name in ("erp", "dna"):
        setup_logger(name, settings.log_level, log_dir=settings.log_dir)

    from erp.db.session import SessionLocal, init_db

    init_db()
    if settings.seed_demo_data:
        from erp.db.seed import seed_demo_data

        db = SessionLocal()
        try:
            seed_demo_data(db)
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # Fail at startup rather than on the first request if the DNA is unreadable
    get_dna_cache().get()
    yield


app = FastAPI(
    title=settings.app_name,
    description="Purchase order approval driven by DNA rule documents",
    version=__version__,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.debug else settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Request logging middleware
app.add_middleware(RequestLoggingMiddleware)

# Include routers
app.include_router(purchase_orders.router, prefix="/api")
app.include_router(dna_rules.router, prefix="/api")
app.include_router(users.router, prefix="/api")
app.include_router(health.router)


@app.get("/")
async def root():
    return {
        "name": settings.app_name,
        "version": __version__,
        "docs": "/docs" if settings.debug else None,
    }
