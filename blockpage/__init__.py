"""
blockpage — moteur de contenu à blocs pour pages CMS.

Usage:
    >>> from blockpage import BlocksDocument, PageBuilder, build_registry
    >>> builder = PageBuilder(build_registry())
    >>> builder.validate(document)                      # à la sauvegarde
    >>> html = await builder.render(document, locale="sk")
"""

# ── Arbre ───────────────────────────────────────────────────────────────────
from .tree import (
    Node, BlocksDocument, DocumentPolicy,
    traverse, select_children, iter_nodes, find_node, node_values,
    collect_violations, validate, validate_document,
    dumps, loads,
)

# ── i18n ────────────────────────────────────────────────────────────────────
from .i18n import (
    I18N_KEY, LocaleConfig,
    is_localized, localized, localized_field,
    resolve, localize_values,
)

# ── Registry / contexte ─────────────────────────────────────────────────────
from .registry import BlockAdmin, BlockDefinition, BlockRegistry, ChildPolicy, UNKNOWN_BLOCK
from .context import BlockContext, NodeState, RenderContext

# ── Prefetch / rendu ────────────────────────────────────────────────────────
from .prefetch import EnrichmentResult, enrich
from .renderer import render_node, render_page, render_tree
from .builder import PageBuilder

# ── Erreurs ─────────────────────────────────────────────────────────────────
from .errors import (
    BlockEngineError, StructuralError, ChildConstraintViolation,
    UnknownBlockType, PrefetchError, RegistryFrozen,
)

from .blocks import build_registry

__version__ = "0.3.0"

__all__ = [
    # arbre
    "Node", "BlocksDocument", "DocumentPolicy",
    "traverse", "select_children", "iter_nodes", "find_node", "node_values",
    "collect_violations", "validate", "validate_document", "dumps", "loads",
    # i18n
    "I18N_KEY", "LocaleConfig", "is_localized", "localized", "localized_field",
    "resolve", "localize_values",
    # registry / contexte
    "BlockAdmin", "BlockDefinition", "BlockRegistry", "ChildPolicy", "UNKNOWN_BLOCK",
    "BlockContext", "NodeState", "RenderContext",
    # prefetch / rendu
    "EnrichmentResult", "enrich", "render_node", "render_page", "render_tree", "PageBuilder",
    # erreurs
    "BlockEngineError", "StructuralError", "ChildConstraintViolation",
    "UnknownBlockType", "PrefetchError", "RegistryFrozen",
    # blocs du site
    "build_registry",
]
