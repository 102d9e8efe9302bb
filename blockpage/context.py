"""
Contexte de rendu + cycle de vie d'un nœud pendant une passe de rendu.
"""
import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .i18n import LocaleConfig

log = logging.getLogger(__name__)


# ── ENUMS ──────────────────────────────────────────────────────────────

class NodeState(str, Enum):
    PENDING           = "PENDING"
    LOCALE_RESOLVED   = "LOCALE_RESOLVED"
    ENRICHED          = "ENRICHED"
    ENRICHMENT_FAILED = "ENRICHMENT_FAILED"
    RENDERED          = "RENDERED"


_TRANSITIONS: Dict[str, List[str]] = {
    "PENDING":           ["LOCALE_RESOLVED"],
    "LOCALE_RESOLVED":   ["ENRICHED", "ENRICHMENT_FAILED"],
    "ENRICHED":          ["RENDERED"],
    "ENRICHMENT_FAILED": ["RENDERED"],
    "RENDERED":          [],
}


def can_transition(current: str, target: str) -> bool:
    return target in _TRANSITIONS.get(current, [])


class NodeStates(dict):
    """id → NodeState pour une passe de rendu."""

    def advance(self, node_id: str, target: NodeState) -> None:
        current = self.get(node_id, NodeState.PENDING)
        if current == target:
            return
        if not can_transition(current, target):
            log.warning("Transition %s → %s refusée pour %s", current.value, target.value, node_id)
            return
        self[node_id] = target


# ── Contextes ──────────────────────────────────────────────────────────

class RenderContext(BaseModel):
    """Contexte d'une requête de rendu (fourni par la couche auth / routing)."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    locale:         str
    default_locale: str           = "en"
    fallback_chain: List[str]     = Field(default_factory=list)
    tenant:         Optional[str] = None
    permissions:    List[str]     = Field(default_factory=list)
    collections:    Any           = None  # CollectionLayer

    @classmethod
    def for_locale(cls, locale: Optional[str], config: LocaleConfig, **kwargs: Any) -> "RenderContext":
        locale = locale or config.default_locale
        return cls(
            locale=locale,
            default_locale=config.default_locale,
            fallback_chain=config.chain(locale),
            **kwargs,
        )


class BlockContext(BaseModel):
    """Contexte passé à enrich() : contexte de rendu + identité du nœud + champs étendus."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    render:     RenderContext
    block_id:   str
    block_type: str
    expanded:   Dict[str, Any] = Field(default_factory=dict)

    @property
    def locale(self) -> str:
        return self.render.locale

    @property
    def collections(self) -> Any:
        return self.render.collections
