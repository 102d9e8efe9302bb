"""
Couche collections — interface consommée par les fonctions enrich / expand.

Le moteur ne connaît que find_by_id / find ; le stockage reste l'affaire de l'implémentation.
SqlCollections : implémentation SQLAlchemy sur la base SQLite de démo (sessions sync exécutées en thread).
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol, Type, runtime_checkable

from sqlalchemy.orm import sessionmaker

from .models import AssetDB, Base, PostDB

log = logging.getLogger(__name__)


@runtime_checkable
class CollectionLayer(Protocol):
    async def find_by_id(self, collection: str, id: str) -> Optional[Dict[str, Any]]: ...
    async def find(
        self,
        collection: str,
        where: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
        order_by: Optional[str] = None,
    ) -> List[Dict[str, Any]]: ...


_DEFAULT_MODELS: Dict[str, Type[Base]] = {
    "assets": AssetDB,
    "posts":  PostDB,
}


class SqlCollections:
    """
    CollectionLayer sur SQLAlchemy.

    where : {"champ": valeur} (égalité) ou {"champ": {"in": [...]}}
    order_by : "champ" (asc) ou "-champ" (desc)
    """

    def __init__(self, session_factory: sessionmaker, models: Optional[Dict[str, Type[Base]]] = None):
        self.session_factory = session_factory
        self.models = dict(models or _DEFAULT_MODELS)

    def _model(self, collection: str) -> Type[Base]:
        model = self.models.get(collection)
        if model is None:
            raise KeyError(f"Collection inconnue : {collection!r}. Disponibles : {list(self.models)}")
        return model

    async def find_by_id(self, collection: str, id: str) -> Optional[Dict[str, Any]]:
        docs = await self.find(collection, where={"id": id}, limit=1)
        return docs[0] if docs else None

    async def find(
        self,
        collection: str,
        where: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
        order_by: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self._find_sync, collection, where or {}, limit, order_by)

    def _find_sync(self, collection, where, limit, order_by) -> List[Dict[str, Any]]:
        model = self._model(collection)
        with self.session_factory() as db:
            q = db.query(model)
            for field, cond in where.items():
                column = getattr(model, field)
                if isinstance(cond, dict) and "in" in cond:
                    q = q.filter(column.in_(list(cond["in"])))
                else:
                    q = q.filter(column == cond)
            if order_by:
                column = getattr(model, order_by.lstrip("-"))
                q = q.order_by(column.desc() if order_by.startswith("-") else column)
            if limit is not None:
                q = q.limit(limit)
            rows = q.all()
        log.debug("find %s %s → %d", collection, where, len(rows))
        return [row.to_dict() for row in rows]
