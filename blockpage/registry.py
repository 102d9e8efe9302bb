"""
Registry des blocs — type → définition (schéma, enrichissement, politique d'enfants, renderer).

Rempli une seule fois au boot puis gelé : lectures concurrentes sans verrou.
Un type inconnu (contenu écrit avant la suppression d'un bloc) → UNKNOWN_BLOCK :
pas d'enrichissement, rendu passthrough des enfants.
"""
import logging
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, List, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field

from .errors import RegistryFrozen
from .i18n import localization_plan

log = logging.getLogger(__name__)

# render(values, data, rendered_children) → markup
RenderFn = Callable[[Any, Any, List[str]], str]
# enrich(values, ctx) → data (async ou sync)
EnrichFn = Callable[[Any, Any], Any]


class ChildPolicy(BaseModel):
    allowed: bool          = False
    max:     Optional[int] = Field(default=None, ge=0)


class BlockAdmin(BaseModel):
    """Métadonnées pour le générateur de formulaires admin."""
    label:       Union[str, Dict[str, str]]           = ""
    description: Optional[Union[str, Dict[str, str]]] = None
    icon:        Optional[str]                        = None
    category:    Optional[str]                        = None
    order:       int                                  = 0


def passthrough(values: Any, data: Any, children: List[str]) -> str:
    """Rien de propre au bloc, seulement ses enfants."""
    return "\n".join(children)


class BlockDefinition(BaseModel):
    """Définition d'un type de bloc."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    type:         str
    render:       RenderFn
    field_schema: Optional[Type[BaseModel]] = None
    child_policy: ChildPolicy               = Field(default_factory=ChildPolicy)
    enrich:       Optional[EnrichFn]        = None
    expand:       Dict[str, str]            = Field(default_factory=dict)  # champ → collection
    admin:        BlockAdmin                = Field(default_factory=BlockAdmin)
    timeout:      Optional[float]           = Field(default=None, gt=0)

    @property
    def is_container(self) -> bool:
        return self.child_policy.allowed

    @property
    def has_prefetch(self) -> bool:
        return self.enrich is not None or bool(self.expand)

    def build_values(self, resolved: Any) -> Any:
        """Valeurs résolues → instance du schéma (ValidationError si invalides)."""
        if self.field_schema is None:
            return resolved
        return self.field_schema.model_validate(resolved if resolved is not None else {})


UNKNOWN_BLOCK = BlockDefinition(
    type="__unknown__",
    render=passthrough,
    child_policy=ChildPolicy(allowed=True),
    admin=BlockAdmin(label="Unknown block"),
)


class BlockRegistry:
    """
    Table type → BlockDefinition.

    Usage:
        >>> registry = BlockRegistry([HERO, TEXT])
        >>> registry.freeze()
        >>> registry.lookup("hero")
    """

    def __init__(self, definitions: Optional[List[BlockDefinition]] = None):
        self._definitions: Dict[str, BlockDefinition] = {}
        self._frozen = False
        for definition in definitions or []:
            self.register(definition)

    def register(self, definition: BlockDefinition) -> BlockDefinition:
        if self._frozen:
            raise RegistryFrozen(f"Registry gelé : impossible d'enregistrer {definition.type!r}")
        if definition.type in self._definitions:
            raise ValueError(f"Bloc déjà enregistré : {definition.type!r}")
        if definition.field_schema is not None:
            localization_plan(definition.field_schema)  # calculé au boot, lu ensuite
        self._definitions[definition.type] = definition
        log.debug("Bloc enregistré : %s", definition.type)
        return definition

    def freeze(self) -> "BlockRegistry":
        self._definitions = MappingProxyType(dict(self._definitions))
        self._frozen = True
        log.info("Registry gelé (%d blocs)", len(self._definitions))
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, block_type: str) -> Optional[BlockDefinition]:
        return self._definitions.get(block_type)

    def lookup(self, block_type: str) -> BlockDefinition:
        """Définition du type, ou UNKNOWN_BLOCK si absent."""
        return self._definitions.get(block_type, UNKNOWN_BLOCK)

    def types(self) -> List[str]:
        return list(self._definitions)

    def __contains__(self, block_type: str) -> bool:
        return block_type in self._definitions

    def __iter__(self) -> Iterator[BlockDefinition]:
        return iter(self._definitions.values())

    def __len__(self) -> int:
        return len(self._definitions)

    def catalog(self) -> List[Dict[str, Any]]:
        """Catalogue pour l'admin : schémas + métadonnées, sans enrich ni render."""
        items = []
        for d in sorted(self, key=lambda d: (d.admin.category or "", d.admin.order, d.type)):
            items.append({
                "type":         d.type,
                "admin":        d.admin.model_dump(),
                "child_policy": d.child_policy.model_dump(),
                "expand":       dict(d.expand),
                "schema":       d.field_schema.model_json_schema() if d.field_schema else {},
            })
        return items
