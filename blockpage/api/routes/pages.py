"""
Pages à blocs — sauvegarde validée, rendu HTML, rendu headless, catalogue.

GET  /api/blocks/catalog           → blocs disponibles + JSON schemas (générateur admin)
POST /api/pages/validate           → {"valid": bool, "errors"?: [...]}
PUT  /api/pages/{slug}             → valide puis enregistre (422 + violation si refus)
GET  /api/pages/{slug}?locale=sk   → arbre + valeurs localisées + données prefetch (JSON)
POST /api/pages/preview?locale=sk  → rendu HTML d'un document non enregistré
GET  /pages/{slug}?locale=sk       → page HTML
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from ... import config, database
from ...blocks import build_registry
from ...builder import PageBuilder
from ...collection_layer import SqlCollections
from ...database import db_get_page, db_list_pages, db_save_page, get_db, page_document
from ...errors import BlockEngineError
from ...i18n import localize_values
from ...models import PageSaveInput
from ...tree import node_values, traverse

log = logging.getLogger(__name__)
router = APIRouter(tags=["Pages"])

# Registry construit et gelé au chargement du module (boot)
REGISTRY = build_registry()
BUILDER  = PageBuilder(REGISTRY, config.locale_config())


def _collections() -> SqlCollections:
    return SqlCollections(database.SessionLocal)


def _load(db: Session, slug: str):
    page = db_get_page(db, slug)
    if page is None:
        raise HTTPException(404, f"Page introuvable : {slug}")
    return page


# ── Catalogue ──────────────────────────────────────────────────────────────────

@router.get("/api/blocks/catalog")
def blocks_catalog():
    """Schémas des blocs pour le générateur de formulaires admin (sans render / enrich)."""
    return {"blocks": REGISTRY.catalog()}


# ── Écriture ───────────────────────────────────────────────────────────────────

@router.post("/api/pages/validate")
def validate_page(req: PageSaveInput):
    errors = BUILDER.violations(req.content)
    if errors:
        return {"valid": False, "errors": [e.to_dict() for e in errors]}
    return {"valid": True}


@router.put("/api/pages/{slug}")
def save_page(slug: str, req: PageSaveInput, db: Session = Depends(get_db)):
    try:
        page = db_save_page(db, slug, req.title, req.content, registry=REGISTRY, policy=BUILDER.policy)
    except BlockEngineError as e:
        log.info("Sauvegarde %s refusée : %s", slug, e)
        raise HTTPException(422, e.to_dict())
    return {"slug": page.slug, "title": page.title, "updated_at": page.updated_at.isoformat()}


@router.get("/api/pages")
def list_pages(db: Session = Depends(get_db)):
    return [{"slug": p.slug, "title": p.title, "updated_at": p.updated_at.isoformat()} for p in db_list_pages(db)]


# ── Lecture / rendu ────────────────────────────────────────────────────────────

@router.get("/api/pages/{slug}")
async def page_data(slug: str, locale: Optional[str] = Query(None), db: Session = Depends(get_db)):
    """Rendu headless : valeurs localisées + données prefetch par nœud."""
    page = _load(db, slug)
    document = page_document(page)
    ctx = BUILDER.context(locale, collections=_collections())
    enrichment = await BUILDER.enrich(document, ctx)

    values = {}
    for node, _ in traverse(document.tree, registry=REGISTRY):
        definition = REGISTRY.lookup(node.type)
        values[node.id] = localize_values(
            node_values(document.values, node.id), definition.field_schema,
            ctx.locale, ctx.fallback_chain, ctx.default_locale,
        )
    return {
        "slug":   page.slug,
        "title":  page.title,
        "locale": ctx.locale,
        "tree":   [n.model_dump() for n in document.tree],
        "values": values,
        "data":   enrichment.data,
        "failed": enrichment.failed(),
    }


@router.post("/api/pages/preview", response_class=HTMLResponse)
async def preview_page(req: PageSaveInput, locale: Optional[str] = Query(None)):
    html = await BUILDER.render_page(req.content, req.title or "Preview", locale=locale, collections=_collections())
    return HTMLResponse(html)


@router.get("/pages/{slug}", response_class=HTMLResponse)
async def render_page(slug: str, locale: Optional[str] = Query(None), db: Session = Depends(get_db)):
    page = _load(db, slug)
    html = await BUILDER.render_page(page_document(page), page.title, locale=locale, collections=_collections())
    return HTMLResponse(html)
