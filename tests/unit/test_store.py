"""Tests for SQLModelRecordStore against in-memory SQLite."""
import json

import pytest
from sqlmodel import Session, select

from contentsync.models.content import Blog, Product, SiteSetting
from contentsync.sync.errors import RecordApplyError
from contentsync.sync.records import CandidateRecord, RecordKind
from contentsync.sync.store import SQLModelRecordStore, enrich_blog, enrich_setting


def _product(key, title="Widget", **extra):
    fields = {"sheets_id": key, "title": title, "status": "Active"}
    fields.update(extra)
    return CandidateRecord(kind=RecordKind.PRODUCT, fields=fields, identity_key=key)


def _blog(key, title, content="<p>Hello world</p>"):
    fields = {"drive_file_id": key, "title": title, "slug": title.lower(), "content": content}
    return CandidateRecord(kind=RecordKind.BLOG, fields=fields, identity_key=key)


@pytest.fixture
def products(engine):
    return SQLModelRecordStore(engine, Product)


@pytest.fixture
def blogs(engine):
    return SQLModelRecordStore(engine, Blog, enrich=enrich_blog)


class TestProductStore:
    def test_create_and_find_ids(self, products):
        products.create(_product("1"))
        products.create(_product("2"))
        assert sorted(products.find_all_ids()) == ["1", "2"]

    def test_create_maps_identity_to_source_id(self, products, engine):
        products.create(_product("7", title="Lamp", price_usd="$9"))
        with Session(engine) as s:
            row = s.exec(select(Product)).one()
        assert row.source_id == "7"
        assert row.title == "Lamp"
        assert row.price_usd == "$9"

    def test_unknown_fields_ignored(self, products, engine):
        products.create(_product("1", not_a_column="x"))
        with Session(engine) as s:
            assert s.exec(select(Product)).one().title == "Widget"

    def test_update_keeps_row_id(self, products, engine):
        products.create(_product("1", title="Old"))
        with Session(engine) as s:
            before = s.exec(select(Product)).one()
        products.update(_product("1", title="New"))
        with Session(engine) as s:
            after = s.exec(select(Product)).one()
        assert after.id == before.id
        assert after.title == "New"
        assert after.created_at == before.created_at
        assert after.last_synced_at >= before.last_synced_at

    def test_update_missing_record_raises(self, products):
        with pytest.raises(RecordApplyError) as exc_info:
            products.update(_product("404"))
        assert exc_info.value.operation == "update"
        assert exc_info.value.identity == "404"

    def test_delete(self, products):
        products.create(_product("1"))
        assert products.delete("1") is True
        assert products.find_all_ids() == []

    def test_delete_missing_returns_false(self, products):
        assert products.delete("nope") is False

    def test_not_null_violation_becomes_record_error(self, products):
        record = CandidateRecord(kind=RecordKind.PRODUCT, fields={"sheets_id": "1"}, identity_key="1")
        with pytest.raises(RecordApplyError) as exc_info:
            products.create(record)
        assert exc_info.value.operation == "create"


class TestBlogStore:
    def test_enrich_fills_excerpt_and_seo(self, blogs, engine):
        blogs.create(_blog("f1", "Hello"))
        with Session(engine) as s:
            row = s.exec(select(Blog)).one()
        assert row.excerpt == "Hello world"
        assert row.seo_title == "Hello"
        assert row.seo_description == "Hello world"

    def test_views_and_likes_survive_update(self, blogs, engine):
        blogs.create(_blog("f1", "Hello"))
        with Session(engine) as s:
            row = s.exec(select(Blog)).one()
            row.views = 12
            row.likes = 3
            s.add(row)
            s.commit()

        record = _blog("f1", "Hello")
        record.fields["views"] = 0
        blogs.update(record)

        with Session(engine) as s:
            row = s.exec(select(Blog)).one()
        assert (row.views, row.likes) == (12, 3)

    def test_rename_keeps_slug(self, blogs, engine):
        blogs.create(_blog("f1", "Old"))
        renamed = _blog("f1", "New Name")
        blogs.update(renamed)

        with Session(engine) as s:
            row = s.exec(select(Blog)).one()
        assert row.title == "New Name"
        assert row.slug == "old"

    def test_duplicate_slug_raises_record_error(self, blogs):
        blogs.create(_blog("f1", "Same"))
        with pytest.raises(RecordApplyError) as exc_info:
            blogs.create(_blog("f2", "Same"))
        assert exc_info.value.identity == "f2"
        assert blogs.find_all_ids() == ["f1"]


class TestSettingStore:
    def test_value_json_encoded(self, engine):
        store = SQLModelRecordStore(engine, SiteSetting, enrich=enrich_setting)
        fields = {"field": "Show Banner", "value": True, "link": "", "source_sheet": "S"}
        store.create(CandidateRecord(kind=RecordKind.SETTINGS, fields=fields, identity_key="Show Banner"))
        with Session(engine) as s:
            row = s.exec(select(SiteSetting)).one()
        assert row.source_id == "Show Banner"
        assert json.loads(row.value_json) is True
        assert row.source_sheet == "S"


class TestEnrichBlog:
    def test_long_content_truncated(self):
        values = enrich_blog({"title": "T", "content": "<p>" + "a" * 300 + "</p>"})
        assert values["excerpt"] == "a" * 200 + "..."

    def test_empty_content_leaves_excerpt_none(self):
        values = enrich_blog({"title": "T", "content": ""})
        assert values["excerpt"] is None
        assert values["seo_description"] is None
