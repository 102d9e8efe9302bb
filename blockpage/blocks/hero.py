"""Bloc Hero — titre, sous-titre, image de fond (asset étendu) et CTA."""
from html import escape
from typing import Literal, Optional

from pydantic import BaseModel, Field

from ..i18n import localized_field
from ..registry import BlockAdmin, BlockDefinition


class HeroValues(BaseModel):
    title:            Optional[str] = localized_field(None)
    subtitle:         Optional[str] = localized_field(None)
    background_image: Optional[str] = None  # id d'asset
    alignment:        Literal["left", "center", "right"] = "center"
    height:           Literal["small", "medium", "large", "full"] = "medium"
    overlay_opacity:  int = Field(default=60, ge=0, le=100)
    cta_text:         Optional[str] = localized_field(None)
    cta_link:         str = "#"


def render_hero(v: HeroValues, data, children) -> str:
    classes = ["hero", f"hero--{v.alignment}", f"hero--{v.height}"]

    # Style inline : image de fond si l'asset a été résolu
    bg = (data or {}).get("background_image")
    style_attr = ""
    if bg and bg.get("url"):
        classes.append("hero--overlay")
        style_attr = (
            f' style="background-image:url(\'{escape(bg["url"])}\');'
            f'--hero-overlay:{v.overlay_opacity / 100:.2f}"'
        )

    subtitle_html = f'\n    <p class="hero__subtitle">{escape(v.subtitle)}</p>' if v.subtitle else ""
    cta_html = ""
    if v.cta_text:
        cta_html = f'\n    <a href="{escape(v.cta_link)}" class="btn btn-primary">{escape(v.cta_text)}</a>'

    return f"""<div class="{" ".join(classes)}"{style_attr}>
  <div class="hero__content">
    <h1 class="hero__title">{escape(v.title or "")}</h1>{subtitle_html}{cta_html}
  </div>
</div>"""


HERO = BlockDefinition(
    type="hero",
    field_schema=HeroValues,
    render=render_hero,
    expand={"background_image": "assets"},
    admin=BlockAdmin(
        label={"en": "Hero Section", "sk": "Hero sekcia"},
        icon="ph:image",
        category="sections",
        order=1,
    ),
)
