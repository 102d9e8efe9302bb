"""
i18n — résolution des valeurs localisées.

Valeur localisée = wrapper {"$i18n": {"en": "Hello", "sk": "Ahoj"}}
Valeur ordinaire → retournée telle quelle
Chaîne de fallback : locale demandée → fallbacks régionaux déclarés → locale par défaut → None

Le schéma du bloc (modèle Pydantic) déclare les chemins localisables via localized_field().
Seuls ces chemins sont substitués ; le reste de la structure n'est jamais touché.
"""
import logging
import types
from collections import abc
from typing import Annotated, Any, Dict, Iterable, List, Optional, Sequence, Tuple, Type, Union, get_args, get_origin

from pydantic import BaseModel, Field, model_validator

log = logging.getLogger(__name__)

I18N_KEY = "$i18n"
LOCALIZED = "localized"


# ── Wrapper ─────────────────────────────────────────────────────────────────

def is_localized(value: Any) -> bool:
    return isinstance(value, dict) and isinstance(value.get(I18N_KEY), dict)


def localized(entries: Optional[Dict[str, Any]] = None, **by_locale: Any) -> Dict[str, Any]:
    """localized(en="Hello", sk="Ahoj") → {"$i18n": {"en": "Hello", "sk": "Ahoj"}}"""
    merged = dict(entries or {})
    merged.update(by_locale)
    return {I18N_KEY: merged}


def base_language(locale: str) -> str:
    """"de-AT" → "de", "pt_BR" → "pt"."""
    return locale.replace("_", "-").split("-")[0]


def resolve(
    value: Any,
    requested_locale: Optional[str],
    fallback_chain: Sequence[str] = (),
    default_locale: Optional[str] = None,
) -> Any:
    """
    Résout une valeur pour une locale. Totale : retourne une valeur ou None, ne lève jamais.
    Une entrée explicite "" est une valeur valide ; une entrée None compte comme absente.
    """
    if not is_localized(value):
        return value

    entries = value[I18N_KEY]
    for loc in (requested_locale, *fallback_chain, default_locale):
        if loc is not None and entries.get(loc) is not None:
            return entries[loc]

    log.debug("Aucune valeur pour %s (chaîne %s, défaut %s)", requested_locale, list(fallback_chain), default_locale)
    return None


# ── Configuration des locales ───────────────────────────────────────────────

class LocaleConfig(BaseModel):
    """Locales du contenu + fallbacks régionaux déclarés."""
    default_locale: str            = "en"
    locales:        List[str]      = Field(default_factory=lambda: ["en"])
    fallbacks:      Dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _regional_fallbacks(self) -> "LocaleConfig":
        if self.default_locale not in self.locales:
            self.locales.append(self.default_locale)
        # Variante régionale → langue de base, si celle-ci est configurée
        for loc in self.locales:
            base = base_language(loc)
            if base != loc and base in self.locales and loc not in self.fallbacks:
                self.fallbacks[loc] = base
        return self

    def chain(self, locale: str) -> List[str]:
        """Fallbacks déclarés (transitifs), sans la locale demandée ni la locale par défaut."""
        chain: List[str] = []
        current = locale
        while current in self.fallbacks:
            current = self.fallbacks[current]
            if current == locale or current in chain:
                break
            if current != self.default_locale:
                chain.append(current)
        return chain

    def resolve(self, value: Any, locale: Optional[str] = None) -> Any:
        locale = locale or self.default_locale
        return resolve(value, locale, self.chain(locale), self.default_locale)


# ── Schéma → chemins localisables ───────────────────────────────────────────

def localized_field(default: Any = None, **kwargs: Any) -> Any:
    """Field Pydantic marqué localisable (visible dans le JSON schema : "localized": true)."""
    extra = dict(kwargs.pop("json_schema_extra", None) or {})
    extra[LOCALIZED] = True
    return Field(default, json_schema_extra=extra, **kwargs)


class LocalizationPlan:
    """Chemins localisables d'un schéma : feuilles + sous-modèles à parcourir."""
    __slots__ = ("leaves", "nested")

    def __init__(self) -> None:
        self.leaves: set = set()
        self.nested: Dict[str, Tuple[bool, "LocalizationPlan"]] = {}

    def __bool__(self) -> bool:
        return bool(self.leaves or self.nested)


_PLANS: Dict[type, LocalizationPlan] = {}


def _nested_model(annotation: Any) -> Optional[Tuple[bool, Type[BaseModel]]]:
    """Annotation → (séquence ?, modèle) si elle contient un sous-modèle Pydantic."""
    origin = get_origin(annotation)
    if origin is Annotated:
        return _nested_model(get_args(annotation)[0])
    if origin in (Union, types.UnionType):
        args = [a for a in get_args(annotation) if a is not type(None)]
        return _nested_model(args[0]) if len(args) == 1 else None
    if origin in (list, tuple, set, frozenset, abc.Sequence):
        args = get_args(annotation)
        if args:
            inner = _nested_model(args[0])
            if inner and not inner[0]:
                return True, inner[1]
        return None
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return False, annotation
    return None


def localization_plan(schema: Type[BaseModel]) -> LocalizationPlan:
    """Calcule (une fois par classe) le plan de localisation d'un schéma."""
    plan = _PLANS.get(schema)
    if plan is not None:
        return plan
    plan = LocalizationPlan()
    _PLANS[schema] = plan  # enregistré avant le parcours : schémas récursifs

    for name, field in schema.model_fields.items():
        key = field.alias or name
        extra = field.json_schema_extra
        if isinstance(extra, dict) and extra.get(LOCALIZED) is True:
            plan.leaves.add(key)
        nested = _nested_model(field.annotation)
        if nested:
            many, model = nested
            plan.nested[key] = (many, localization_plan(model))
    return plan


def _apply(value: Any, plan: LocalizationPlan, locale, chain, default) -> Any:
    if not isinstance(value, dict):
        return value
    out = dict(value)
    for key in plan.leaves:
        if key in out:
            out[key] = resolve(out[key], locale, chain, default)
    for key, (many, sub) in plan.nested.items():
        if key not in out:
            continue
        current = out[key]
        if many and isinstance(current, list):
            out[key] = [_apply(item, sub, locale, chain, default) for item in current]
        elif not many:
            out[key] = _apply(current, sub, locale, chain, default)
    return out


def localize_values(
    raw: Any,
    schema: Optional[Type[BaseModel]],
    locale: Optional[str],
    fallback_chain: Iterable[str] = (),
    default_locale: Optional[str] = None,
) -> Any:
    """Résout les chemins localisables déclarés par le schéma ; sans schéma → inchangé."""
    if schema is None:
        return raw
    plan = localization_plan(schema)
    if not plan:
        return raw
    return _apply(raw, plan, locale, tuple(fallback_chain), default_locale)
