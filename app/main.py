"""
Deal Genie backend API: usage entitlements, lead search, CRM, saved-search
alerts and the GenieNet deal board.
"""
from dotenv import load_dotenv
load_dotenv()

import logging
import os
import sys
from pathlib import Path

from alembic import command
from alembic.config import Config

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)],
    force=True,
)

logger = logging.getLogger(__name__)

RUN_MIGRATIONS = os.getenv("RUN_MIGRATIONS", "true").lower() in ("1", "true", "yes")
DEFAULT_CORS_ORIGINS = "http://localhost:3000,https://dealgenieos.com,https://www.dealgenieos.com"


def run_migrations() -> None:
    """Run Alembic migrations on startup. Uses alembic.ini and DATABASE_URL.
    Fails startup if migrations fail, so the DB is never left out of sync."""
    project_root = Path(__file__).resolve().parent.parent
    alembic_ini = project_root / "alembic.ini"
    if not alembic_ini.exists():
        logger.warning("alembic.ini not found, skipping Alembic migrations")
        return
    db_url = os.getenv("DATABASE_URL")
    if not db_url:
        logger.error("DATABASE_URL is not set. Alembic migrations will not run.")
        return
    if db_url.startswith("postgres://"):
        db_url = "postgresql://" + db_url[10:]
    try:
        alembic_cfg = Config(str(alembic_ini))
        alembic_cfg.set_main_option("script_location", str(project_root / "alembic"))
        alembic_cfg.set_main_option("sqlalchemy.url", db_url)
        command.upgrade(alembic_cfg, "head")
        logger.info("Alembic migrations completed successfully")
    except Exception as e:
        logger.exception("Alembic migration failed: %s", e)
        raise


from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.api.routes import crm, cron, genienet, leads, saved_searches, usage
from app.core.plan_limits import validate_usage_limits
from app.db.session import engine
from app.db.base import Base
# Import all models so they are registered with Base
from app.models import User, Subscription, UsageLog, CrmLead, SavedSearch, GenieNetDeal, WaitlistEntry  # noqa: F401

app = FastAPI(title="Deal Genie API")


@app.on_event("startup")
async def startup_event():
    """Check the quota table, create tables, then run Alembic migrations."""
    validate_usage_limits()

    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=engine)

    if RUN_MIGRATIONS:
        run_migrations()


cors_origins = [o.strip() for o in os.getenv("CORS_ORIGINS", DEFAULT_CORS_ORIGINS).split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_origin_regex=r"https://.*\.vercel\.app",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(usage.router, prefix="/api/usage", tags=["Usage"])
app.include_router(leads.router, prefix="/api/leads", tags=["Leads"])
app.include_router(crm.router, prefix="/api/crm", tags=["CRM"])
app.include_router(saved_searches.router, prefix="/api/saved-searches", tags=["Saved Searches"])
app.include_router(cron.router, prefix="/api/cron", tags=["Cron"])
app.include_router(genienet.router, prefix="/api/genienet", tags=["GenieNet"])


@app.get("/health")
def health():
    return {"status": "ok"}
