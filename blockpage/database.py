"""SQLite — init + session + helpers pages"""
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from . import config
from .models import Base, PageDB
from .tree import BlocksDocument, DocumentPolicy, dumps, loads, validate

log = logging.getLogger(__name__)

ENGINE       = None
SessionLocal = sessionmaker(autocommit=False, autoflush=False)


def configure(db_url: Optional[str] = None):
    """(Re)lie le moteur — défaut : sqlite:///DB_PATH."""
    global ENGINE
    if db_url is None:
        Path(config.DB_PATH).parent.mkdir(parents=True, exist_ok=True)
        db_url = f"sqlite:///{config.DB_PATH}"
    ENGINE = create_engine(db_url, connect_args={"check_same_thread": False})
    SessionLocal.configure(bind=ENGINE)
    return ENGINE


def init_db():
    if ENGINE is None:
        configure()
    Base.metadata.create_all(bind=ENGINE)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# ── Pages ──
def db_get_page(db: Session, slug: str) -> Optional[PageDB]:
    return db.query(PageDB).filter_by(slug=slug).first()


def db_list_pages(db: Session) -> List[PageDB]:
    return db.query(PageDB).order_by(PageDB.slug).all()


def page_document(page: PageDB) -> BlocksDocument:
    return loads(page.content or "{}")


def db_save_page(
    db: Session,
    slug: str,
    title: str,
    document: BlocksDocument,
    registry=None,
    policy: Optional[DocumentPolicy] = None,
) -> PageDB:
    """
    Valide puis enregistre (upsert par slug).
    Une violation structurelle lève avant toute écriture.
    """
    validate(document.tree, document.values, registry=registry, policy=policy)

    page = db_get_page(db, slug)
    if page is None:
        page = PageDB(slug=slug)
        db.add(page)
    page.title = title
    page.content = dumps(document)
    page.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(page)
    log.info("Page %s enregistrée (%d bloc(s) racine)", slug, len(document.tree))
    return page
