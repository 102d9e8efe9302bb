"""Tests persistance — sauvegarde validée des pages, couche collections SQLAlchemy."""
import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from datetime import datetime

import pytest

from blockpage import database
from blockpage.blocks import build_registry
from blockpage.collection_layer import CollectionLayer, SqlCollections
from blockpage.database import db_get_page, db_list_pages, db_save_page, page_document
from blockpage.errors import ChildConstraintViolation, StructuralError
from blockpage.i18n import localized
from blockpage.models import AssetDB, PageDB, PostDB
from blockpage.tree import BlocksDocument, Node


# ── Fixtures ──────────────────────────────────────────────────────────────

@pytest.fixture
def db(tmp_path):
    database.configure(f"sqlite:///{tmp_path / 'test.db'}")
    database.init_db()
    session = database.SessionLocal()
    session.add_all([
        AssetDB(id="a1", filename="a1.png", url="/media/a1.png", alt="Un"),
        AssetDB(id="a2", filename="a2.png", url="/media/a2.png"),
        PostDB(id="p1", slug="first",  title="Premier",  published_at=datetime(2024, 1, 1)),
        PostDB(id="p2", slug="second", title="Deuxième", published_at=datetime(2024, 6, 1)),
        PostDB(id="p3", slug="third",  title="Troisième", published_at=datetime(2024, 3, 1)),
    ])
    session.commit()
    yield session
    session.close()


def document(columns=2):
    return BlocksDocument(
        tree=[Node(id="c", type="columns", children=[Node(id=f"t{i}", type="text") for i in range(columns)])],
        values={"t0": {"body": localized(en="Hello", sk="Ahoj")}},
    )


# ── Pages ─────────────────────────────────────────────────────────────────

class TestPages:
    def test_save_and_load(self, db):
        page = db_save_page(db, "home", "Accueil", document(), registry=build_registry())
        assert page.page_id
        assert page_document(db_get_page(db, "home")) == document()

    def test_upsert(self, db):
        db_save_page(db, "home", "V1", document(), registry=build_registry())
        db_save_page(db, "home", "V2", document(3), registry=build_registry())
        pages = db_list_pages(db)
        assert [p.title for p in pages] == ["V2"]
        assert len(page_document(pages[0]).tree[0].children) == 3

    def test_violation_prevents_write(self, db):
        with pytest.raises(ChildConstraintViolation):
            db_save_page(db, "home", "Trop", document(5), registry=build_registry())
        assert db_get_page(db, "home") is None

    def test_violation_keeps_previous_version(self, db):
        db_save_page(db, "home", "OK", document(), registry=build_registry())
        bad = BlocksDocument(tree=[Node(id="x", type="text"), Node(id="x", type="text")])
        with pytest.raises(StructuralError):
            db_save_page(db, "home", "KO", bad, registry=build_registry())
        assert db_get_page(db, "home").title == "OK"

    def test_default_content(self, db):
        db.add(PageDB(slug="blank"))
        db.commit()
        assert page_document(db_get_page(db, "blank")) == BlocksDocument()


# ── Couche collections ────────────────────────────────────────────────────

class TestSqlCollections:
    def test_protocol(self):
        assert isinstance(SqlCollections(database.SessionLocal), CollectionLayer)

    @pytest.mark.asyncio
    async def test_find_in(self, db):
        layer = SqlCollections(database.SessionLocal)
        docs = await layer.find("assets", where={"id": {"in": ["a2", "a1", "missing"]}})
        assert sorted(d["id"] for d in docs) == ["a1", "a2"]
        assert {d["id"]: d["url"] for d in docs}["a1"] == "/media/a1.png"

    @pytest.mark.asyncio
    async def test_find_order_and_limit(self, db):
        layer = SqlCollections(database.SessionLocal)
        docs = await layer.find("posts", order_by="-published_at", limit=2)
        assert [d["slug"] for d in docs] == ["second", "third"]
        assert docs[0]["published_at"] == "2024-06-01T00:00:00"

    @pytest.mark.asyncio
    async def test_find_ascending(self, db):
        layer = SqlCollections(database.SessionLocal)
        docs = await layer.find("posts", order_by="published_at")
        assert [d["slug"] for d in docs] == ["first", "third", "second"]

    @pytest.mark.asyncio
    async def test_find_equality(self, db):
        layer = SqlCollections(database.SessionLocal)
        docs = await layer.find("posts", where={"slug": "third"})
        assert [d["id"] for d in docs] == ["p3"]

    @pytest.mark.asyncio
    async def test_find_by_id(self, db):
        layer = SqlCollections(database.SessionLocal)
        assert (await layer.find_by_id("assets", "a1"))["alt"] == "Un"
        assert await layer.find_by_id("assets", "nope") is None

    @pytest.mark.asyncio
    async def test_unknown_collection(self, db):
        layer = SqlCollections(database.SessionLocal)
        with pytest.raises(KeyError):
            await layer.find("comments")
