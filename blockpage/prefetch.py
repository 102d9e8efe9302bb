"""
Prefetch — enrichissement des blocs avant rendu.

Deux mécanismes alimentent data[node_id] :

1. Champs déclarés (`expand={"background_image": "assets"}`) : les ids référencés
   sont chargés en lot, une requête par collection, puis distribués aux nœuds.
2. Fonction `enrich(values, ctx)` : données arbitraires (async ou sync).
   Sa sortie (dict) est fusionnée par-dessus les champs étendus.

Concurrence bornée par un sémaphore ; chaque appel a son propre timeout.
Un slot reste pris tant que l'appel tourne (thread d'une fonction sync compris), même après timeout.
Les enfants écartés par la politique du bloc ne sont ni enrichis ni rendus (select_children).
Un échec (exception / timeout) est isolé au nœud : donnée absente, PrefetchError journalisée.
La fonction ne retourne qu'une fois tous les nœuds terminés (succès, échec ou timeout).
"""
import asyncio
import contextvars
import functools
import inspect
import logging
from typing import Any, Dict, List, Optional, Tuple

from . import config
from .context import BlockContext, NodeState, NodeStates, RenderContext
from .errors import PrefetchError
from .i18n import localize_values
from .registry import BlockDefinition, BlockRegistry
from .tree import Node, node_values, traverse

log = logging.getLogger(__name__)

_Target = Tuple[Node, BlockDefinition, Any]


class EnrichmentResult:
    """Résultat d'une passe : id → data, id → PrefetchError, id → NodeState."""

    def __init__(self):
        self.data: Dict[str, Any] = {}
        self.errors: Dict[str, PrefetchError] = {}
        self.states = NodeStates()

    def get(self, node_id: str, default: Any = None) -> Any:
        return self.data.get(node_id, default)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self.data

    def failed(self) -> List[str]:
        return list(self.errors)

    def _succeed(self, node_id: str, data: Any) -> None:
        if data is not None:
            self.data[node_id] = data
        self.states.advance(node_id, NodeState.ENRICHED)

    def _fail(self, error: PrefetchError) -> None:
        if error.node_id not in self.errors:
            log.warning("%s", error)
        self.errors.setdefault(error.node_id, error)
        self.data.pop(error.node_id, None)
        self.states.advance(error.node_id, NodeState.ENRICHMENT_FAILED)


# ── Point d'entrée public ───────────────────────────────────────────────────

async def enrich(
    tree: List[Node],
    values: Dict[str, Any],
    registry: BlockRegistry,
    ctx: RenderContext,
    concurrency: Optional[int] = None,
    timeout: Optional[float] = None,
) -> EnrichmentResult:
    """
    Enrichit tous les nœuds de l'arbre.

    Args:
        concurrency: appels simultanés max (défaut PREFETCH_CONCURRENCY)
        timeout: timeout par appel en secondes (défaut PREFETCH_TIMEOUT, surchargé par bloc)
    """
    concurrency = concurrency if concurrency is not None else config.PREFETCH_CONCURRENCY
    timeout = timeout if timeout is not None else config.PREFETCH_TIMEOUT
    if concurrency < 1:
        raise ValueError(f"concurrency doit être >= 1 (reçu {concurrency})")

    result = EnrichmentResult()
    semaphore = asyncio.Semaphore(concurrency)

    targets: List[_Target] = []
    seen: set = set()
    for node, _ in traverse(tree, registry=registry):
        # Au plus un enrichissement par nœud et par passe
        if node.id in seen:
            continue
        seen.add(node.id)
        definition = registry.lookup(node.type)
        resolved = localize_values(
            node_values(values, node.id), definition.field_schema,
            ctx.locale, ctx.fallback_chain, ctx.default_locale,
        )
        result.states.advance(node.id, NodeState.LOCALE_RESOLVED)
        if definition.has_prefetch:
            targets.append((node, definition, resolved))
        else:
            result._succeed(node.id, None)

    if not targets:
        return result

    expanded = await _expand_declared_fields(targets, ctx, semaphore, timeout, result)
    await asyncio.gather(*(
        _enrich_node(node, definition, resolved, expanded.get(node.id, {}), ctx, semaphore, timeout, result)
        for node, definition, resolved in targets
    ))
    log.debug("Prefetch : %d nœud(s), %d échec(s)", len(targets), len(result.errors))
    return result


# ── Champs déclarés ─────────────────────────────────────────────────────────

def _ref_ids(value: Any) -> List[str]:
    refs = value if isinstance(value, list) else [value]
    return [str(r) for r in refs if isinstance(r, (str, int)) and not isinstance(r, bool) and str(r)]


async def _fetch_collection(
    collection: str,
    ids: List[str],
    ctx: RenderContext,
    semaphore: asyncio.Semaphore,
    timeout: float,
) -> Tuple[Optional[Dict[str, Any]], Optional[BaseException], bool]:
    """→ (records par id, erreur, timeout ?)"""
    if ctx.collections is None:
        return None, RuntimeError("Aucune couche collections dans le contexte"), False
    try:
        async with semaphore:
            docs = await asyncio.wait_for(
                ctx.collections.find(collection, where={"id": {"in": ids}}, limit=len(ids)),
                timeout,
            )
    except asyncio.TimeoutError:
        return None, None, True
    except Exception as e:
        return None, e, False
    return {str(d["id"]): d for d in docs or [] if isinstance(d, dict) and "id" in d}, None, False


async def _expand_declared_fields(
    targets: List[_Target],
    ctx: RenderContext,
    semaphore: asyncio.Semaphore,
    timeout: float,
    result: EnrichmentResult,
) -> Dict[str, Dict[str, Any]]:
    """Charge en lot les champs `expand` de tous les nœuds, une requête par collection."""
    wanted: Dict[str, List[str]] = {}
    for node, definition, resolved in targets:
        if not definition.expand or not isinstance(resolved, dict):
            continue
        for field, collection in definition.expand.items():
            ids = wanted.setdefault(collection, [])
            for ref in _ref_ids(resolved.get(field)):
                if ref not in ids:
                    ids.append(ref)

    wanted = {c: ids for c, ids in wanted.items() if ids}
    if not wanted:
        return {}

    collections = list(wanted)
    fetched = await asyncio.gather(*(
        _fetch_collection(c, wanted[c], ctx, semaphore, timeout) for c in collections
    ))
    by_collection = dict(zip(collections, fetched))

    expanded: Dict[str, Dict[str, Any]] = {}
    for node, definition, resolved in targets:
        if not definition.expand or not isinstance(resolved, dict):
            continue
        for field, collection in definition.expand.items():
            value = resolved.get(field)
            if not _ref_ids(value):
                continue
            records, error, timed_out = by_collection[collection]
            if records is None:
                result._fail(PrefetchError(node.id, node.type, cause=error, timed_out=timed_out))
                break
            node_data = expanded.setdefault(node.id, {})
            if isinstance(value, list):
                node_data[field] = [records[r] for r in _ref_ids(value) if r in records]
            else:
                node_data[field] = records.get(_ref_ids(value)[0])
    return expanded


# ── Fonction enrich ─────────────────────────────────────────────────────────

def _start(fn, values: Any, ctx: BlockContext) -> Tuple[asyncio.Future, bool]:
    """Lance l'appel → (future, annulable ?). Une fonction sync tourne dans un thread, qui ne s'annule pas."""
    if inspect.iscoroutinefunction(fn):
        return asyncio.ensure_future(fn(values, ctx)), True
    loop = asyncio.get_running_loop()
    call = functools.partial(contextvars.copy_context().run, fn, values, ctx)
    return loop.run_in_executor(None, call), False


async def _bounded_call(fn, values: Any, ctx: BlockContext, semaphore: asyncio.Semaphore, timeout: float) -> Any:
    """
    Appel sous le sémaphore avec timeout.
    Le slot est rendu quand l'appel est réellement terminé (fin du thread compris),
    pas quand on cesse de l'attendre.
    """
    await semaphore.acquire()
    try:
        fut, cancellable = _start(fn, values, ctx)
    except BaseException:
        semaphore.release()
        raise

    def _done(f: asyncio.Future) -> None:
        semaphore.release()
        if not f.cancelled():
            f.exception()  # résultat tardif ignoré

    fut.add_done_callback(_done)

    try:
        out = await asyncio.wait_for(asyncio.shield(fut), timeout)
    except asyncio.TimeoutError:
        if cancellable:
            fut.cancel()
        raise
    except asyncio.CancelledError:
        if cancellable:
            fut.cancel()
            await asyncio.wait({fut})
        raise
    if inspect.isawaitable(out):
        out = await asyncio.wait_for(out, timeout)
    return out


async def _enrich_node(
    node: Node,
    definition: BlockDefinition,
    resolved: Any,
    expanded: Dict[str, Any],
    ctx: RenderContext,
    semaphore: asyncio.Semaphore,
    timeout: float,
    result: EnrichmentResult,
) -> None:
    if node.id in result.errors:
        return

    if definition.enrich is None:
        result._succeed(node.id, dict(expanded) if expanded else None)
        return

    block_ctx = BlockContext(render=ctx, block_id=node.id, block_type=node.type, expanded=expanded)
    try:
        block_values = definition.build_values(resolved)
        out = await _bounded_call(definition.enrich, block_values, block_ctx, semaphore, definition.timeout or timeout)
    except asyncio.TimeoutError:
        result._fail(PrefetchError(node.id, node.type, timed_out=True))
        return
    except Exception as e:
        result._fail(PrefetchError(node.id, node.type, cause=e))
        return

    if expanded and isinstance(out, dict):
        out = {**expanded, **out}
    elif out is None and expanded:
        out = dict(expanded)
    result._succeed(node.id, out)
