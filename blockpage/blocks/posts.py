"""Bloc Featured Posts — derniers articles chargés via la couche collections."""
from html import escape
from typing import Optional

from pydantic import BaseModel, Field

from ..i18n import localized_field
from ..registry import BlockAdmin, BlockDefinition


class FeaturedPostsValues(BaseModel):
    title:     Optional[str] = localized_field(None)
    limit:     int           = Field(default=3, ge=1, le=24)
    read_more: Optional[str] = localized_field(None)


async def enrich_featured_posts(v: FeaturedPostsValues, ctx) -> dict:
    if ctx.collections is None:
        return {"posts": []}
    posts = await ctx.collections.find("posts", order_by="-published_at", limit=v.limit)
    return {"posts": posts}


def render_featured_posts(v: FeaturedPostsValues, data, children) -> str:
    posts = (data or {}).get("posts") or []
    if not posts:
        return ""
    title_html = f'\n  <h2 class="posts__title">{escape(v.title)}</h2>' if v.title else ""
    cards = ""
    for post in posts:
        more = f'\n    <a class="posts__more" href="/blog/{escape(post.get("slug") or "")}">{escape(v.read_more)}</a>' if v.read_more else ""
        cards += f"""
  <article class="posts__card">
    <h3>{escape(post.get("title") or "")}</h3>
    <p>{escape(post.get("excerpt") or "")}</p>{more}
  </article>"""
    return f'<div class="posts">{title_html}{cards}\n</div>'


FEATURED_POSTS = BlockDefinition(
    type="featured_posts",
    field_schema=FeaturedPostsValues,
    render=render_featured_posts,
    enrich=enrich_featured_posts,
    admin=BlockAdmin(label={"en": "Featured Posts", "sk": "Vybrané články"}, icon="ph:newspaper", category="sections", order=2),
)
