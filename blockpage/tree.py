"""
Modèle d'arbre de contenu.

Une page = arbre ordonné de nœuds typés (_tree) + table de valeurs par id (_values).
La table est indépendante de la forme de l'arbre : déplacer un nœud ne touche pas son contenu.

Format persisté :
    {"_tree": [{"id": "a1", "type": "hero", "children": []}], "_values": {"a1": {...}}}
"""
import logging
from typing import Any, Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .errors import BlockEngineError, ChildConstraintViolation, StructuralError, UnknownBlockType

log = logging.getLogger(__name__)

ParentPath = Tuple[str, ...]


class Node(BaseModel):
    """Nœud de l'arbre : id unique, type (discriminant registry), enfants ordonnés."""
    id: str
    type: str
    children: List["Node"] = Field(default_factory=list)


class BlocksDocument(BaseModel):
    """Document de blocs : arbre + valeurs. Alias _tree/_values = format persisté."""
    model_config = ConfigDict(populate_by_name=True)

    tree:   List[Node]     = Field(default_factory=list, alias="_tree")
    values: Dict[str, Any] = Field(default_factory=dict, alias="_values")


class DocumentPolicy(BaseModel):
    """Contraintes au niveau du champ blocs (toute la page)."""
    allowed_blocks: Optional[List[str]] = None
    min_blocks:     Optional[int]       = Field(default=None, ge=0)
    max_blocks:     Optional[int]       = Field(default=None, ge=0)
    allow_nesting:  bool                = True
    max_depth:      Optional[int]       = Field(default=None, ge=1)


# ── Sérialisation ───────────────────────────────────────────────────────────

def dumps(document: BlocksDocument) -> str:
    return document.model_dump_json(by_alias=True)


def loads(raw: str) -> BlocksDocument:
    return BlocksDocument.model_validate_json(raw)


# ── Parcours ────────────────────────────────────────────────────────────────

def select_children(node: Node, registry=None, warn: bool = False) -> List[Node]:
    """
    Enfants retenus pour l'enrichissement et le rendu (contenu antérieur à une contrainte) :
    bloc sans enfants autorisés → aucun, au-delà de max → tronqué. Type inconnu → tous.
    """
    if registry is None or not node.children:
        return node.children
    definition = registry.get(node.type)
    if definition is None:
        return node.children
    cp = definition.child_policy
    count = len(node.children)
    if not cp.allowed:
        if warn:
            log.warning("%s — enfants ignorés", ChildConstraintViolation(
                f"{node.type}:{node.id} n'accepte pas d'enfants ({count})", node.id, node.type, 0, count,
            ))
        return []
    if cp.max is not None and count > cp.max:
        if warn:
            log.warning("%s — enfants excédentaires ignorés", ChildConstraintViolation(
                f"{node.type}:{node.id} accepte au plus {cp.max} enfant(s) ({count})", node.id, node.type, cp.max, count,
            ))
        return node.children[:cp.max]
    return node.children


def traverse(
    tree: List[Node],
    parent_path: ParentPath = (),
    registry=None,
) -> Iterator[Tuple[Node, ParentPath]]:
    """
    Parcours paresseux en profondeur (pré-ordre) → (node, ids des ancêtres).
    Fonction pure de l'arbre : chaque appel repart du début.
    Un nœud déjà présent parmi ses ancêtres est ignoré.
    Avec un registry : seuls les enfants retenus par select_children sont parcourus.
    """
    for node in tree:
        if node.id in parent_path:
            log.warning("Cycle ignoré au parcours : %s sous %s", node.id, "/".join(parent_path))
            continue
        yield node, parent_path
        yield from traverse(select_children(node, registry), parent_path + (node.id,), registry)


def iter_nodes(tree: List[Node]) -> Iterator[Node]:
    for node, _ in traverse(tree):
        yield node


def find_node(tree: List[Node], node_id: str) -> Optional[Node]:
    for node in iter_nodes(tree):
        if node.id == node_id:
            return node
    return None


def node_values(values: Dict[str, Any], node_id: str) -> Any:
    """Valeurs d'un nœud — absence = {} (valeurs par défaut), jamais une erreur."""
    value = values.get(node_id)
    return {} if value is None else value


# ── Validation ──────────────────────────────────────────────────────────────

def collect_violations(
    tree: List[Node],
    registry=None,
    policy: Optional[DocumentPolicy] = None,
    strict_types: bool = False,
) -> List[BlockEngineError]:
    """
    Retourne toutes les violations de l'arbre (liste vide = valide).

    - ids non vides et uniques, pas de cycle            → StructuralError
    - politique d'enfants du bloc (allowed / max)      → ChildConstraintViolation
    - politique du document (min/max, nesting, depth)  → ChildConstraintViolation
    - type non enregistré (si strict_types)             → UnknownBlockType
    """
    errors: List[BlockEngineError] = []
    seen: set = set()

    if policy is not None:
        count = len(tree)
        if policy.min_blocks is not None and count < policy.min_blocks:
            errors.append(ChildConstraintViolation(
                f"Au moins {policy.min_blocks} bloc(s) requis, {count} trouvé(s)",
                limit=policy.min_blocks, actual=count,
            ))
        if policy.max_blocks is not None and count > policy.max_blocks:
            errors.append(ChildConstraintViolation(
                f"Au plus {policy.max_blocks} bloc(s) autorisé(s), {count} trouvé(s)",
                limit=policy.max_blocks, actual=count,
            ))

    def visit(nodes: List[Node], path: ParentPath, depth: int) -> None:
        for node in nodes:
            if not isinstance(node.id, str) or not node.id.strip():
                errors.append(StructuralError(f"Nœud de type {node.type!r} sans id"))
                continue
            if node.id in path:
                errors.append(StructuralError(
                    f"Cycle : {node.id!r} est son propre ancêtre ({'/'.join(path)})", node.id,
                ))
                continue
            if node.id in seen:
                errors.append(StructuralError(f"Id dupliqué : {node.id!r}", node.id))
                continue
            seen.add(node.id)

            _check_document_policy(node, depth, policy, errors)
            _check_block_policy(node, registry, strict_types, errors)

            visit(node.children, path + (node.id,), depth + 1)

    visit(tree, (), 1)
    return errors


def _check_document_policy(node: Node, depth: int, policy: Optional[DocumentPolicy], errors: list) -> None:
    if policy is None:
        return
    if policy.allowed_blocks is not None and node.type not in policy.allowed_blocks:
        errors.append(ChildConstraintViolation(
            f"Bloc {node.type!r} non autorisé dans ce document", node.id, block_type=node.type,
        ))
    if node.children and not policy.allow_nesting:
        errors.append(ChildConstraintViolation(
            "Imbrication désactivée pour ce document", node.id,
            block_type=node.type, limit=0, actual=len(node.children),
        ))
    if policy.max_depth is not None and depth > policy.max_depth:
        errors.append(ChildConstraintViolation(
            f"Profondeur {depth} > {policy.max_depth}", node.id,
            block_type=node.type, limit=policy.max_depth, actual=depth,
        ))


def _check_block_policy(node: Node, registry, strict_types: bool, errors: list) -> None:
    if registry is None:
        return
    definition = registry.get(node.type)
    if definition is None:
        if strict_types:
            errors.append(UnknownBlockType(node.type, node.id))
        return
    cp = definition.child_policy
    count = len(node.children)
    if not cp.allowed and count:
        errors.append(ChildConstraintViolation(
            f"Le bloc {node.type!r} n'accepte pas d'enfants ({count} trouvé(s))", node.id,
            block_type=node.type, limit=0, actual=count,
        ))
    elif cp.max is not None and count > cp.max:
        errors.append(ChildConstraintViolation(
            f"Le bloc {node.type!r} accepte au plus {cp.max} enfant(s), {count} trouvé(s)", node.id,
            block_type=node.type, limit=cp.max, actual=count,
        ))


def validate(
    tree: List[Node],
    values: Optional[Dict[str, Any]] = None,
    registry=None,
    policy: Optional[DocumentPolicy] = None,
    strict_types: bool = True,
) -> None:
    """
    Validation à la sauvegarde : lève la première violation.
    Les valeurs ne sont pas contrôlées ici (une entrée absente = valeurs par défaut).
    """
    errors = collect_violations(tree, registry=registry, policy=policy, strict_types=strict_types)
    if errors:
        raise errors[0]
    if values:
        orphans = set(values) - {n.id for n in iter_nodes(tree)}
        if orphans:
            log.debug("Valeurs orphelines conservées : %s", sorted(orphans))


def validate_document(document: BlocksDocument, registry=None, policy: Optional[DocumentPolicy] = None) -> None:
    validate(document.tree, document.values, registry=registry, policy=policy)
