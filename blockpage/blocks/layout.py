"""Blocs conteneurs — Section (enfants illimités) et Columns (4 enfants max)."""
from html import escape
from typing import Literal, Optional

from pydantic import BaseModel

from ..i18n import localized_field
from ..registry import BlockAdmin, BlockDefinition, ChildPolicy


class SectionValues(BaseModel):
    title:    Optional[str] = localized_field(None)
    anchor:   Optional[str] = None
    bg_color: Optional[str] = None


class ColumnsValues(BaseModel):
    gap:   Literal["small", "medium", "large"] = "medium"
    align: Literal["start", "center", "end", "stretch"] = "stretch"


def render_section(v: SectionValues, data, children) -> str:
    id_attr  = f' id="{escape(v.anchor)}"' if v.anchor else ""
    bg_style = f' style="background:{escape(v.bg_color)};"' if v.bg_color else ""
    title_html = f'    <h2 class="section__title">{escape(v.title)}</h2>\n' if v.title else ""
    inner = "\n".join(children)
    return f"""<section{id_attr} class="section"{bg_style}>
  <div class="container">
{title_html}{inner}
  </div>
</section>"""


def render_columns(v: ColumnsValues, data, children) -> str:
    if not children:
        return ""
    cols_html = "\n".join(f'  <div class="col">\n{child}\n  </div>' for child in children)
    return f'<div class="grid grid--cols-{len(children)} grid--gap-{v.gap} grid--align-{v.align}">\n{cols_html}\n</div>'


SECTION = BlockDefinition(
    type="section",
    field_schema=SectionValues,
    render=render_section,
    child_policy=ChildPolicy(allowed=True),
    admin=BlockAdmin(label={"en": "Section", "sk": "Sekcia"}, icon="ph:layout", category="layout", order=1),
)

COLUMNS = BlockDefinition(
    type="columns",
    field_schema=ColumnsValues,
    render=render_columns,
    child_policy=ChildPolicy(allowed=True, max=4),
    admin=BlockAdmin(label={"en": "Columns", "sk": "Stĺpce"}, icon="ph:columns", category="layout", order=2),
)
