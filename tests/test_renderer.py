"""Tests renderer — ordre enfants/parent, dégradation par nœud, types inconnus, cycle de vie."""
import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from typing import Optional

from pydantic import BaseModel

from blockpage.context import NodeState, NodeStates, RenderContext
from blockpage.i18n import LocaleConfig, localized, localized_field
from blockpage.registry import BlockDefinition, BlockRegistry, ChildPolicy
from blockpage.renderer import render_node, render_page, render_tree
from blockpage.tree import Node


# ── Helpers ───────────────────────────────────────────────────────────────

def n(id, type, *children):
    return Node(id=id, type=type, children=list(children))


def ctx(locale="en"):
    cfg = LocaleConfig(default_locale="en", locales=["en", "sk", "de", "de-AT"])
    return RenderContext.for_locale(locale, cfg)


class Heading(BaseModel):
    text:  Optional[str] = localized_field(None)
    level: int           = 2


def render_heading(values, data, children):
    return f"<h{values.level}>{values.text or ''}</h{values.level}>"


def render_box(values, data, children):
    return "<div>" + "".join(children) + "</div>"


def render_leaf(values, data, children):
    return f"<p>{(values or {}).get('body', '')}</p>"


def make_registry(calls=None):
    def tracked(render):
        def wrapper(values, data, children):
            if calls is not None:
                calls.append((render.__name__, len(children)))
            return render(values, data, children)
        wrapper.__name__ = render.__name__
        return wrapper

    return BlockRegistry([
        BlockDefinition(type="heading", render=tracked(render_heading), field_schema=Heading),
        BlockDefinition(type="box", render=tracked(render_box), child_policy=ChildPolicy(allowed=True)),
        BlockDefinition(type="grid", render=tracked(render_box), child_policy=ChildPolicy(allowed=True, max=2)),
        BlockDefinition(type="leaf", render=tracked(render_leaf)),
    ]).freeze()


# ── Ordre de rendu ────────────────────────────────────────────────────────

class TestOrder:
    def test_children_before_parent(self):
        calls = []
        tree = [n("b", "box", n("l1", "leaf"), n("l2", "leaf"))]
        html = render_tree(tree, {"l1": {"body": "un"}, "l2": {"body": "deux"}}, {}, ctx(), make_registry(calls))
        assert html == "<div><p>un</p><p>deux</p></div>"
        assert calls == [("render_leaf", 0), ("render_leaf", 0), ("render_box", 2)]

    def test_root_order_preserved(self):
        tree = [n("a", "leaf"), n("b", "leaf")]
        html = render_tree(tree, {"a": {"body": "1"}, "b": {"body": "2"}}, {}, ctx(), make_registry())
        assert html == "<p>1</p>\n<p>2</p>"

    def test_data_lookup(self):
        def render_data(values, data, children):
            return "none" if data is None else data["v"]

        reg = BlockRegistry([BlockDefinition(type="d", render=render_data)]).freeze()
        tree = [n("a", "d"), n("b", "d")]
        assert render_tree(tree, {}, {"a": {"v": "A"}}, ctx(), reg) == "A\nnone"


# ── Localisation ──────────────────────────────────────────────────────────

class TestLocalization:
    values = {"h": {"text": localized(en="Hello", de="Hallo", sk="Ahoj"), "level": 1}}

    def test_requested_locale(self):
        assert render_tree([n("h", "heading")], self.values, {}, ctx("sk"), make_registry()) == "<h1>Ahoj</h1>"

    def test_regional_fallback(self):
        assert render_tree([n("h", "heading")], self.values, {}, ctx("de-AT"), make_registry()) == "<h1>Hallo</h1>"

    def test_default_fallback(self):
        values = {"h": {"text": localized(en="Hello")}}
        assert render_tree([n("h", "heading")], values, {}, ctx("sk"), make_registry()) == "<h2>Hello</h2>"

    def test_missing_values_use_defaults(self):
        assert render_tree([n("h", "heading")], {}, {}, ctx(), make_registry()) == "<h2></h2>"


# ── Dégradation ───────────────────────────────────────────────────────────

class TestDegradation:
    def test_unknown_type_renders_children(self):
        tree = [n("old", "retired-block", n("l", "leaf"))]
        html = render_tree(tree, {"l": {"body": "kept"}}, {}, ctx(), make_registry())
        assert html == "<p>kept</p>"

    def test_unknown_leaf_renders_nothing(self):
        tree = [n("old", "retired-block"), n("l", "leaf")]
        html = render_tree(tree, {"l": {"body": "x"}}, {}, ctx(), make_registry())
        assert html == "<p>x</p>"

    def test_invalid_values_degrade(self):
        tree = [n("h", "heading"), n("l", "leaf")]
        values = {"h": {"level": "titre"}, "l": {"body": "ok"}}
        assert render_tree(tree, values, {}, ctx(), make_registry()) == "<p>ok</p>"

    def test_raising_renderer_degrades_to_children(self):
        def explode(values, data, children):
            raise KeyError("x")

        reg = BlockRegistry([
            BlockDefinition(type="bad", render=explode, child_policy=ChildPolicy(allowed=True)),
            BlockDefinition(type="leaf", render=render_leaf),
        ]).freeze()
        tree = [n("b", "bad", n("l", "leaf")), n("z", "leaf")]
        html = render_tree(tree, {"l": {"body": "in"}, "z": {"body": "after"}}, {}, ctx(), reg)
        assert html == "<p>in</p>\n<p>after</p>"

    def test_leaf_with_stored_children_ignores_them(self):
        tree = [n("l", "leaf", n("x", "leaf"))]
        html = render_tree(tree, {"l": {"body": "p"}, "x": {"body": "hidden"}}, {}, ctx(), make_registry())
        assert html == "<p>p</p>"

    def test_children_over_max_truncated(self):
        tree = [n("g", "grid", n("a", "leaf"), n("b", "leaf"), n("c", "leaf"))]
        values = {"a": {"body": "1"}, "b": {"body": "2"}, "c": {"body": "3"}}
        assert render_tree(tree, values, {}, ctx(), make_registry()) == "<div><p>1</p><p>2</p></div>"

    def test_cycle_rendered_once(self):
        box = n("b", "box")
        box.children.append(box)
        assert render_tree([box], {}, {}, ctx(), make_registry()) == "<div></div>"

    def test_no_enrichment(self):
        assert render_tree([n("l", "leaf")], {"l": {"body": "x"}}, None, ctx(), make_registry()) == "<p>x</p>"


# ── Cycle de vie ──────────────────────────────────────────────────────────

class TestStates:
    def test_all_nodes_rendered(self):
        states = NodeStates()
        tree = [n("b", "box", n("l", "leaf")), n("old", "retired-block")]
        render_tree(tree, {}, {}, ctx(), make_registry(), states)
        assert states == {"b": NodeState.RENDERED, "l": NodeState.RENDERED, "old": NodeState.RENDERED}

    def test_render_node_direct(self):
        states = NodeStates()
        out = render_node(n("l", "leaf"), {"l": {"body": "x"}}, {}, ctx(), make_registry(), states)
        assert out == "<p>x</p>"
        assert states["l"] == NodeState.RENDERED

    def test_invalid_transition_ignored(self):
        states = NodeStates()
        states.advance("a", NodeState.RENDERED)
        assert "a" not in states
        states.advance("a", NodeState.LOCALE_RESOLVED)
        states.advance("a", NodeState.ENRICHMENT_FAILED)
        states.advance("a", NodeState.RENDERED)
        assert states["a"] == NodeState.RENDERED


# ── Page ──────────────────────────────────────────────────────────────────

class TestRenderPage:
    def test_shell(self):
        html = render_page("Tom & Jerry", "<p>x</p>", lang="sk", description='Desc "q"')
        assert html.startswith("<!DOCTYPE html>")
        assert '<html lang="sk">' in html
        assert "<title>Tom &amp; Jerry</title>" in html
        assert 'content="Desc &quot;q&quot;"' in html
        assert "<p>x</p>" in html

    def test_no_description(self):
        assert 'name="description"' not in render_page("T", "")
