import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chaveamento.config import LOG_LEVEL
from chaveamento.database import init_db
from chaveamento.routes import brackets, tournaments

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

APP_NAME = "Chaveamento API"

app = FastAPI(title=APP_NAME)

_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_extra = os.getenv("CORS_ORIGINS", "")
if _extra:
    _cors_origins.extend(o.strip() for o in _extra.split(",") if o.strip())

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(tournaments.router, prefix="/api", tags=["tournaments"])
app.include_router(brackets.router, prefix="/api", tags=["brackets"])


@app.on_event("startup")
def on_startup():
    init_db()  # Use centralized init_db() which imports models and creates tables
    logger.info("%s started with %d routes", APP_NAME, len(app.routes))


@app.get("/api/health")
def health_check():
    return {"app_name": APP_NAME, "status": "healthy"}
