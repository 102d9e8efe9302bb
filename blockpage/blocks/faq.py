"""Bloc FAQ — liste question/réponse, chaque texte localisé dans les éléments."""
from html import escape
from typing import List, Optional

from pydantic import BaseModel, Field

from ..i18n import localized_field
from ..registry import BlockAdmin, BlockDefinition


class FAQItem(BaseModel):
    question: Optional[str] = localized_field(None)
    answer:   Optional[str] = localized_field(None)


class FAQValues(BaseModel):
    title: Optional[str]  = localized_field(None)
    items: List[FAQItem]  = Field(default_factory=list)
    open_first: bool      = False


def render_faq(v: FAQValues, data, children) -> str:
    items_html = ""
    for i, item in enumerate(v.items):
        if not item.question:
            continue
        open_attr = " open" if v.open_first and i == 0 else ""
        items_html += f"""
  <details class="faq__item"{open_attr}>
    <summary class="faq__question">{escape(item.question)}</summary>
    <div class="faq__answer">{escape(item.answer or "")}</div>
  </details>"""
    title_html = f'\n  <h2 class="faq__title">{escape(v.title)}</h2>' if v.title else ""
    return f'<div class="faq">{title_html}{items_html}\n</div>'


FAQ = BlockDefinition(
    type="faq",
    field_schema=FAQValues,
    render=render_faq,
    admin=BlockAdmin(label={"en": "FAQ", "sk": "Časté otázky"}, icon="ph:question", category="content", order=3),
)
