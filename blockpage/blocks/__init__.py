"""
Blocs du site — définitions + construction du registry au boot.
"""
from typing import Iterable, Optional

from ..registry import BlockDefinition, BlockRegistry
from .faq import FAQ, FAQItem, FAQValues
from .hero import HERO, HeroValues
from .image import IMAGE, ImageValues
from .layout import COLUMNS, SECTION, ColumnsValues, SectionValues
from .posts import FEATURED_POSTS, FeaturedPostsValues
from .text import TEXT, TextValues

ALL_BLOCKS = [HERO, TEXT, IMAGE, SECTION, COLUMNS, FAQ, FEATURED_POSTS]


def build_registry(extra: Optional[Iterable[BlockDefinition]] = None, freeze: bool = True) -> BlockRegistry:
    """Registry des blocs du site (+ blocs additionnels), gelé par défaut."""
    registry = BlockRegistry(ALL_BLOCKS)
    for definition in extra or []:
        registry.register(definition)
    return registry.freeze() if freeze else registry


__all__ = [
    "ALL_BLOCKS", "build_registry",
    "HERO", "HeroValues",
    "TEXT", "TextValues",
    "IMAGE", "ImageValues",
    "SECTION", "SectionValues",
    "COLUMNS", "ColumnsValues",
    "FAQ", "FAQValues", "FAQItem",
    "FEATURED_POSTS", "FeaturedPostsValues",
]
