"""
blockpage — FastAPI app
Démarrer : uvicorn blockpage.api.main:app --reload --port 8001
"""
import logging

from fastapi import FastAPI

from .. import __version__
from .routes import pages

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s — %(message)s")
log = logging.getLogger(__name__)

app = FastAPI(title="blockpage — pages à blocs", version=__version__, docs_url="/docs")
app.include_router(pages.router)


@app.on_event("startup")
def startup():
    from ..database import init_db
    init_db()
    log.info("DB initialisée (SQLite) — %d blocs enregistrés", len(pages.REGISTRY))


@app.get("/health")
def health():
    return {"status": "ok", "service": "blockpage", "version": __version__}
