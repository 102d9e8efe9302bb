"""Bloc Text — texte libre localisé, paragraphes séparés par une ligne vide."""
from html import escape
from typing import Literal, Optional

from pydantic import BaseModel

from ..i18n import localized_field
from ..registry import BlockAdmin, BlockDefinition


class TextValues(BaseModel):
    body:    Optional[str] = localized_field(None)
    variant: Literal["default", "lead", "muted"] = "default"


def render_text(v: TextValues, data, children) -> str:
    if not v.body:
        return ""
    paragraphs = [p.strip() for p in v.body.split("\n\n") if p.strip()]
    inner = "\n".join(f"  <p>{escape(p)}</p>" for p in paragraphs)
    return f'<div class="text text--{v.variant}">\n{inner}\n</div>'


TEXT = BlockDefinition(
    type="text",
    field_schema=TextValues,
    render=render_text,
    admin=BlockAdmin(label={"en": "Text", "sk": "Text"}, icon="ph:text-t", category="content", order=1),
)
