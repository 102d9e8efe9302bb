"""
Erreurs du moteur de blocs.

Sauvegarde : StructuralError / ChildConstraintViolation / UnknownBlockType → save refusé.
Rendu      : UnknownBlockType / PrefetchError → journalisées, jamais levées (dégradation par nœud).
"""
from typing import Any, Dict, Optional


class BlockEngineError(Exception):
    """Erreur de base du moteur."""

    def __init__(self, message: str, node_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.node_id = node_id

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error":   type(self).__name__,
            "message": self.message,
            "node_id": self.node_id,
        }


class StructuralError(BlockEngineError):
    """Arbre mal formé : id dupliqué, id vide, cycle."""


class ChildConstraintViolation(BlockEngineError):
    """Nombre d'enfants / imbrication contraire à la politique du bloc ou du document."""

    def __init__(
        self,
        message: str,
        node_id: Optional[str] = None,
        block_type: Optional[str] = None,
        limit: Optional[int] = None,
        actual: Optional[int] = None,
    ):
        super().__init__(message, node_id)
        self.block_type = block_type
        self.limit = limit
        self.actual = actual

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d.update(block_type=self.block_type, limit=self.limit, actual=self.actual)
        return d


class UnknownBlockType(BlockEngineError):
    """Type de bloc absent du registry."""

    def __init__(self, block_type: str, node_id: Optional[str] = None):
        super().__init__(f"Type de bloc inconnu : {block_type!r}", node_id)
        self.block_type = block_type

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["block_type"] = self.block_type
        return d


class PrefetchError(BlockEngineError):
    """Échec ou timeout de l'enrichissement d'un nœud."""

    def __init__(
        self,
        node_id: str,
        block_type: str,
        cause: Optional[BaseException] = None,
        timed_out: bool = False,
    ):
        reason = "timeout" if timed_out else f"{type(cause).__name__}: {cause}"
        super().__init__(f"Prefetch {block_type}:{node_id} échoué ({reason})", node_id)
        self.block_type = block_type
        self.cause = cause
        self.timed_out = timed_out

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d.update(block_type=self.block_type, timed_out=self.timed_out)
        return d


class RegistryFrozen(BlockEngineError):
    """Enregistrement tenté après le boot."""
