"""
Renderer — dispatch récursif des nœuds via le registry.

Pour chaque nœud : définition (UNKNOWN_BLOCK si type inconnu) → valeurs localisées →
donnée d'enrichissement (absente = None) → rendu des enfants d'abord → render(values, data, children).

Anomalies au rendu (type inconnu, valeurs invalides, renderer qui lève, politique d'enfants
violée par du contenu ancien) : journalisées, jamais propagées. Au pire une zone vide.
"""
import html
import logging
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from .context import NodeState, NodeStates, RenderContext
from .errors import UnknownBlockType
from .i18n import localize_values
from .registry import UNKNOWN_BLOCK, BlockRegistry, passthrough
from .tree import Node, node_values, select_children

log = logging.getLogger(__name__)


# ── Point d'entrée public ───────────────────────────────────────────────────

def render_tree(
    tree: List[Node],
    values: Dict[str, Any],
    enrichment: Any,
    ctx: RenderContext,
    registry: BlockRegistry,
    states: Optional[NodeStates] = None,
) -> str:
    """
    Rend l'arbre complet.

    Args:
        enrichment: EnrichmentResult ou simple dict id → data
        states: suivi des états par nœud (défaut : celui de l'EnrichmentResult)
    """
    if states is None:
        states = getattr(enrichment, "states", None)
        if states is None:
            states = NodeStates()
    failed = frozenset(getattr(enrichment, "errors", ()))
    parts = [render_node(n, values, enrichment or {}, ctx, registry, states, failed) for n in tree]
    return "\n".join(p for p in parts if p)


def render_node(
    node: Node,
    values: Dict[str, Any],
    enrichment: Any,
    ctx: RenderContext,
    registry: BlockRegistry,
    states: NodeStates,
    failed: frozenset = frozenset(),
    path: Tuple[str, ...] = (),
) -> str:
    definition = registry.lookup(node.type)
    if definition is UNKNOWN_BLOCK:
        log.warning("%s (nœud %s) — rendu passthrough", UnknownBlockType(node.type, node.id), node.id)

    resolved = localize_values(
        node_values(values, node.id), definition.field_schema,
        ctx.locale, ctx.fallback_chain, ctx.default_locale,
    )
    if states.get(node.id, NodeState.PENDING) == NodeState.PENDING:
        states.advance(node.id, NodeState.LOCALE_RESOLVED)
    if states.get(node.id) == NodeState.LOCALE_RESOLVED:
        states.advance(node.id, NodeState.ENRICHMENT_FAILED if node.id in failed else NodeState.ENRICHED)

    data = enrichment.get(node.id)

    child_path = path + (node.id,)
    rendered_children = []
    for child in select_children(node, registry, warn=True):
        if child.id in child_path:
            log.warning("Cycle : %s ignoré sous %s", child.id, node.id)
            continue
        out = render_node(child, values, enrichment, ctx, registry, states, failed, child_path)
        if out:
            rendered_children.append(out)

    try:
        block_values = definition.build_values(resolved)
    except ValidationError as e:
        log.warning("Valeurs invalides pour %s:%s (%d erreur(s)) — passthrough", node.type, node.id, e.error_count())
        markup = passthrough(None, None, rendered_children)
    else:
        try:
            markup = definition.render(block_values, data, rendered_children)
        except Exception:
            log.exception("Renderer %s:%s en échec — passthrough", node.type, node.id)
            markup = passthrough(None, None, rendered_children)

    states.advance(node.id, NodeState.RENDERED)
    return markup or ""


# ── Page ────────────────────────────────────────────────────────────────────

def render_page(
    title: str,
    body: str,
    lang: str = "en",
    description: Optional[str] = None,
    extra_head: str = "",
    extra_body_end: str = "",
) -> str:
    """Génère le HTML complet d'une page autour du rendu des blocs."""
    desc = f'<meta name="description" content="{html.escape(description)}">' if description else ""
    return f"""<!DOCTYPE html>
<html lang="{html.escape(lang)}">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{html.escape(title)}</title>
  {desc}
  {extra_head}
</head>
<body>
{body}
{extra_body_end}
</body>
</html>"""
