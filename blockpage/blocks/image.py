"""Bloc Image — image uploadée (asset étendu) + légende localisée."""
from html import escape
from typing import Literal, Optional

from pydantic import BaseModel

from ..i18n import localized_field
from ..registry import BlockAdmin, BlockDefinition


class ImageValues(BaseModel):
    image:   Optional[str] = None  # id d'asset
    caption: Optional[str] = localized_field(None)
    alt:     Optional[str] = localized_field(None)
    width:   Literal["contained", "full"] = "contained"


def render_image(v: ImageValues, data, children) -> str:
    asset = (data or {}).get("image")
    if not asset or not asset.get("url"):
        return ""
    alt = v.alt or asset.get("alt") or ""
    caption_html = f"\n  <figcaption>{escape(v.caption)}</figcaption>" if v.caption else ""
    return (
        f'<figure class="image image--{v.width}">\n'
        f'  <img src="{escape(asset["url"])}" alt="{escape(alt)}" loading="lazy">{caption_html}\n'
        f"</figure>"
    )


IMAGE = BlockDefinition(
    type="image",
    field_schema=ImageValues,
    render=render_image,
    expand={"image": "assets"},
    admin=BlockAdmin(label={"en": "Image", "sk": "Obrázok"}, icon="ph:image-square", category="content", order=2),
)
