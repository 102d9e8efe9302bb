"""
API publique du moteur de blocs.
"""
import logging
from typing import Any, List, Optional

from . import config
from .context import RenderContext
from .errors import BlockEngineError
from .i18n import LocaleConfig
from .prefetch import EnrichmentResult, enrich
from .registry import BlockRegistry
from .renderer import render_page as _render_page
from .renderer import render_tree
from .tree import BlocksDocument, DocumentPolicy, collect_violations, validate

log = logging.getLogger(__name__)


class PageBuilder:
    """
    Builder de pages à blocs.

    Usage:
        >>> builder = PageBuilder(build_registry(), locale_config())
        >>> builder.validate(document)
        >>> html = await builder.render(document, locale="sk", collections=layer)
    """

    def __init__(
        self,
        registry: BlockRegistry,
        locales: Optional[LocaleConfig] = None,
        policy: Optional[DocumentPolicy] = None,
        concurrency: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        """
        Args:
            registry: registry gelé au boot
            locales: configuration des locales (défaut : environnement)
            policy: contraintes au niveau du document
            concurrency: enrichissements simultanés max
            timeout: timeout par enrichissement (s)
        """
        self.registry = registry
        self.locales = locales or config.locale_config()
        self.policy = policy
        self.concurrency = concurrency if concurrency is not None else config.PREFETCH_CONCURRENCY
        self.timeout = timeout if timeout is not None else config.PREFETCH_TIMEOUT

    def context(self, locale: Optional[str] = None, **kwargs: Any) -> RenderContext:
        return RenderContext.for_locale(locale, self.locales, **kwargs)

    def validate(self, document: BlocksDocument) -> None:
        """Validation à la sauvegarde — lève StructuralError / ChildConstraintViolation / UnknownBlockType."""
        validate(document.tree, document.values, registry=self.registry, policy=self.policy)

    def violations(self, document: BlocksDocument) -> List[BlockEngineError]:
        return collect_violations(document.tree, registry=self.registry, policy=self.policy, strict_types=True)

    async def enrich(self, document: BlocksDocument, ctx: RenderContext) -> EnrichmentResult:
        return await enrich(
            document.tree, document.values, self.registry, ctx,
            concurrency=self.concurrency, timeout=self.timeout,
        )

    async def render(self, document: BlocksDocument, locale: Optional[str] = None, **ctx_kwargs: Any) -> str:
        """Prefetch (barrière) puis rendu récursif."""
        ctx = self.context(locale, **ctx_kwargs)
        enrichment = await self.enrich(document, ctx)
        return render_tree(document.tree, document.values, enrichment, ctx, self.registry)

    async def render_page(
        self,
        document: BlocksDocument,
        title: str,
        locale: Optional[str] = None,
        description: Optional[str] = None,
        **ctx_kwargs: Any,
    ) -> str:
        """Rend un document en page HTML complète."""
        body = await self.render(document, locale, **ctx_kwargs)
        return _render_page(title, body, lang=locale or self.locales.default_locale, description=description)
