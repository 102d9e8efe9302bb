"""Tests registry — enregistrement, gel au boot, types inconnus, catalogue admin."""
import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from typing import Optional

import pytest
from pydantic import BaseModel, ValidationError

from blockpage.blocks import ALL_BLOCKS, build_registry
from blockpage.errors import RegistryFrozen
from blockpage.i18n import localized_field
from blockpage.registry import UNKNOWN_BLOCK, BlockAdmin, BlockDefinition, BlockRegistry, ChildPolicy, passthrough


class Quote(BaseModel):
    text: Optional[str] = localized_field(None)


def quote_block(**kw):
    return BlockDefinition(
        type="quote", render=lambda v, d, c: f"<q>{v.text}</q>", field_schema=Quote,
        admin=BlockAdmin(label="Quote", category="content", order=9), **kw,
    )


class TestRegister:
    def test_register_and_lookup(self):
        reg = BlockRegistry()
        reg.register(quote_block())
        assert "quote" in reg
        assert reg.lookup("quote").type == "quote"
        assert reg.types() == ["quote"]
        assert len(reg) == 1

    def test_duplicate_type(self):
        reg = BlockRegistry([quote_block()])
        with pytest.raises(ValueError):
            reg.register(quote_block())

    def test_frozen_rejects_registration(self):
        reg = BlockRegistry().freeze()
        assert reg.frozen
        with pytest.raises(RegistryFrozen):
            reg.register(quote_block())

    def test_unknown_lookup(self):
        reg = BlockRegistry([quote_block()]).freeze()
        assert reg.get("retired-block") is None
        definition = reg.lookup("retired-block")
        assert definition is UNKNOWN_BLOCK
        assert definition.is_container
        assert not definition.has_prefetch
        assert definition.render(None, None, ["<a>", "<b>"]) == "<a>\n<b>"

    def test_definition_is_immutable(self):
        definition = quote_block()
        with pytest.raises(ValidationError):
            definition.type = "other"


class TestDefinition:
    def test_has_prefetch(self):
        async def fetch(values, ctx):
            return {}

        assert not quote_block().has_prefetch
        assert quote_block(enrich=fetch).has_prefetch
        assert quote_block(expand={"image": "assets"}).has_prefetch

    def test_build_values(self):
        values = quote_block().build_values({"text": "hi"})
        assert isinstance(values, Quote) and values.text == "hi"
        assert quote_block().build_values(None).text is None

    def test_build_values_without_schema(self):
        definition = BlockDefinition(type="raw", render=passthrough)
        assert definition.build_values({"x": 1}) == {"x": 1}

    def test_negative_max_rejected(self):
        with pytest.raises(ValidationError):
            ChildPolicy(allowed=True, max=-1)


class TestCatalog:
    def test_catalog_entries(self):
        catalog = BlockRegistry([quote_block()]).catalog()
        assert len(catalog) == 1
        entry = catalog[0]
        assert set(entry) == {"type", "admin", "child_policy", "expand", "schema"}
        assert entry["admin"]["label"] == "Quote"
        assert entry["schema"]["properties"]["text"]["localized"] is True

    def test_site_registry(self):
        reg = build_registry()
        assert reg.frozen
        assert len(reg) == len(ALL_BLOCKS)
        assert set(reg.types()) == {"hero", "text", "image", "section", "columns", "faq", "featured_posts"}

    def test_site_catalog_sorted_by_category(self):
        catalog = build_registry().catalog()
        keys = [(e["admin"]["category"] or "", e["admin"]["order"], e["type"]) for e in catalog]
        assert keys == sorted(keys)
        columns = next(e for e in catalog if e["type"] == "columns")
        assert columns["child_policy"] == {"allowed": True, "max": 4}

    def test_extra_blocks(self):
        reg = build_registry(extra=[quote_block()])
        assert "quote" in reg and reg.frozen

    def test_unfrozen_build(self):
        reg = build_registry(freeze=False)
        reg.register(quote_block())
        assert "quote" in reg
