"""
Tests for SQLAlchemyModelAdapter against an in-memory SQLite database.
"""

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, NoResultFound

from scaffoldkit.adapters import QueryOptions, get_adapter
from scaffoldkit.adapters.sqlalchemy_adapter import SQLAlchemyModelAdapter
from scaffoldkit.core.config import AdapterSettings
from scaffoldkit.core.exceptions import AdapterError, AssociationError, ConfigurationError, RecordNotFoundError
from scaffoldkit.metadata.base import AssociationKind

from tests.models import Author, Comment, Note, Post, Tag, post_tags


def _ids(records):
    return [record.id for record in records]


def _tag_ids(session, post_id):
    stmt = select(post_tags.c.tag_id).where(post_tags.c.post_id == post_id).order_by(post_tags.c.tag_id)
    return list(session.scalars(stmt))


def _comment_ids(session, post_id):
    stmt = select(Comment.id).where(Comment.post_id == post_id).order_by(Comment.id)
    return list(session.scalars(stmt))


class TestMetadataLookups:
    """Tests for field, association and column lookups."""

    def test_fields_and_associations(self, adapter):
        assert adapter.fields(Post) == ["author", "body", "status", "title"]
        assert adapter.associations(Post) == ["author", "comments", "notes", "tags"]

    def test_overridden_listings(self, adapter, registry):
        registry.override(Post, fields=["title"], associations=["comments"])

        assert adapter.fields(Post) == ["title"]
        assert adapter.associations(Post) == ["comments"]

    def test_association_type(self, adapter):
        assert adapter.association_type(Post, "author") is AssociationKind.SINGULAR
        assert adapter.association_type(Post, "comments") is AssociationKind.PLURAL_OWNED
        assert adapter.association_type(Post, "tags") is AssociationKind.PLURAL_SHARED
        assert adapter.association_type(Post, "tags") == "edit"

    def test_unknown_association(self, adapter):
        with pytest.raises(AssociationError) as exc_info:
            adapter.association_type(Post, "nope")

        assert exc_info.value.details["association"] == "nope"

    def test_associated_class(self, adapter):
        assert adapter.associated_class(Post, "author") is Author
        assert adapter.associated_class(Post, "tags") is Tag
        assert adapter.associated_class(Tag, "posts") is Post

    def test_shared_association_options(self, adapter):
        options = adapter.shared_association_options(Post, "tags")

        assert options.associated_class is Tag
        assert options.foreign_key == "post_id"
        assert options.association_foreign_key == "tag_id"
        assert options.join_table == "post_tags"

    def test_shared_association_options_rejects_has_many(self, adapter):
        with pytest.raises(AssociationError):
            adapter.shared_association_options(Post, "comments")

    def test_table_column_type(self, adapter):
        assert adapter.table_column_type(Post, "title") == "string"
        assert adapter.table_column_type(Post, "comments_count") == "integer"
        assert adapter.table_column_type(Post, "author") is None

    def test_primary_key_and_table(self, adapter):
        assert adapter.primary_key(Post) == "id"
        assert adapter.table_name(Post) == "posts"

    def test_use_references_override(self, adapter, registry):
        assert adapter.use_references(Post) is False

        registry.override(Post, use_references=True)

        assert adapter.use_references(Post) is True

    def test_use_references_from_settings(self, session, registry):
        adapter = SQLAlchemyModelAdapter(session, registry=registry, settings=AdapterSettings(use_references=True))

        assert adapter.use_references(Post) is True


class TestGetObject:
    """Tests for single-record lookup."""

    def test_string_id_coerced(self, adapter, blog):
        post = adapter.get_object(Post, "5")

        assert post is blog[5]
        assert adapter.get_id(post) == 5
        assert adapter.attribute_value(post, "title") == "Bravo"

    def test_padded_id_coerced(self, adapter, blog):
        assert adapter.get_object(Post, " 7 ").title == "Charlie"

    def test_missing_record(self, adapter, blog):
        with pytest.raises(RecordNotFoundError) as exc_info:
            adapter.get_object(Post, 999)

        assert exc_info.value.details == {"model": "Post", "record_id": "999"}
        assert "Couldn't find Post" in str(exc_info.value)

    def test_unparseable_id(self, adapter, blog):
        with pytest.raises(RecordNotFoundError):
            adapter.get_object(Post, "abc")

    def test_none_id(self, adapter, blog):
        with pytest.raises(RecordNotFoundError):
            adapter.get_object(Post, None)

    def test_catchable_as_orm_error(self, adapter, blog):
        with pytest.raises(NoResultFound):
            adapter.get_object(Post, 404)

        assert issubclass(adapter.error_raised, NoResultFound)


class TestGetObjects:
    """Tests for collection queries."""

    def test_no_options_ordered_by_key(self, adapter, blog):
        assert _ids(adapter.get_objects(Post)) == [3, 5, 7, 9]

    def test_limit_and_offset(self, adapter, blog):
        assert _ids(adapter.get_objects(Post, {"limit": 2, "offset": 1})) == [5, 7]

    def test_mapping_condition(self, adapter, blog):
        records = adapter.get_objects(Post, {"conditions": {"status": "active"}})

        assert _ids(records) == [3, 7, 9]

    def test_literal_condition_with_params(self, adapter, blog):
        records = adapter.get_objects(Post, {"conditions": ["status = :status AND id > :min_id", {"status": "active"}, {"min_id": 3}]})

        assert _ids(records) == [7, 9]

    def test_fragments_with_closure_and_none(self, adapter, blog):
        records = adapter.get_objects(
            Post,
            {"conditions": [lambda model: model.id > 4, None, {"status": "active"}]},
        )

        assert _ids(records) == [7, 9]

    def test_order_descending(self, adapter, blog):
        assert _ids(adapter.get_objects(Post, {"order": "-title"})) == [9, 7, 5, 3]
        assert _ids(adapter.get_objects(Post, {"order": "title desc"})) == [9, 7, 5, 3]

    def test_order_falls_back_to_primary_key_only_when_unset(self, session, registry, blog):
        adapter = SQLAlchemyModelAdapter(
            session,
            registry=registry,
            settings=AdapterSettings(default_order_by_primary_key=False),
        )

        assert sorted(_ids(adapter.get_objects(Post))) == [3, 5, 7, 9]

    def test_include_eager_loads(self, adapter, blog, session):
        records = adapter.get_objects(Post, {"include": ["author", "tags"], "limit": 1})

        assert _ids(records) == [3]
        assert "author" in records[0].__dict__
        assert [tag.name for tag in records[0].tags] == ["python"]

    def test_include_with_references(self, adapter, registry, blog):
        registry.override(Post, use_references=True)

        records = adapter.get_objects(
            Post,
            {"include": "author", "conditions": ["authors.name = :name", {"name": "Ann"}]},
        )

        assert _ids(records) == [3, 5]
        assert records[0].author.name == "Ann"

    def test_references_paginate_parent_rows(self, adapter, registry, blog):
        registry.override(Post, use_references=True)

        records = adapter.get_objects(Post, {"include": ["comments"], "limit": 2, "offset": 1})

        assert _ids(records) == [5, 7]
        assert sorted(c.id for c in records[0].comments) == [1, 2, 3]
        assert [c.id for c in records[1].comments] == [4]

    def test_nested_association_condition(self, adapter, registry, blog):
        registry.override(Post, use_references=True)

        records = adapter.get_objects(Post, {"include": "author", "conditions": {"author": {"name": "Bob"}}})

        assert _ids(records) == [7, 9]

    def test_options_object(self, adapter, blog):
        records = adapter.get_objects(Post, QueryOptions(conditions=[{"id": [3, 9]}]))

        assert _ids(records) == [3, 9]


class TestPersistence:
    """Tests for save and destroy."""

    def test_save_valid(self, adapter, session, blog):
        post = Post(id=20, title="Echo")

        assert adapter.save(post) is True
        assert session.get(Post, 20) is post

    def test_save_invalid(self, adapter, session, blog):
        post = Post(id=21, title="")

        assert adapter.save(post) is False
        assert post not in session

    def test_save_updates_existing(self, adapter, session, blog):
        post = blog[5]
        post.status = "active"

        assert adapter.save(post) is True
        session.expire_all()
        assert session.get(Post, 5).status == "active"

    def test_save_without_validator(self, adapter, session, blog):
        tag = Tag(id=10, name="new")

        assert adapter.save(tag) is True
        assert session.get(Tag, 10).name == "new"

    def test_autocommit_disabled_only_flushes(self, session, registry, blog):
        adapter = SQLAlchemyModelAdapter(session, registry=registry, settings=AdapterSettings(autocommit=False))
        adapter.save(Post(id=30, title="Temp"))

        session.rollback()

        assert session.get(Post, 30) is None

    def test_failed_write_rolls_back(self, adapter, session, blog):
        with pytest.raises(IntegrityError):
            adapter.save(Tag(id=11))

        assert adapter.get_object(Tag, 1).name == "python"
        assert session.get(Tag, 11) is None

    def test_destroy(self, adapter, session, blog):
        adapter.destroy(blog[9])

        with pytest.raises(RecordNotFoundError):
            adapter.get_object(Post, 9)


class TestAssociationEditing:
    """Tests for adding and removing associated records."""

    def test_add_shared(self, adapter, session, blog):
        orm = session.get(Tag, 3)

        adapter.add_associated_object(blog[5], "tags", orm)

        assert _tag_ids(session, 5) == [1, 2, 3]

    def test_add_is_idempotent(self, adapter, session, blog):
        python = session.get(Tag, 1)

        adapter.add_associated_object(blog[5], "tags", python)
        adapter.add_associated_object(blog[5], "tags", python)

        assert _tag_ids(session, 5) == [1, 2]

    def test_remove_shared(self, adapter, session, blog):
        sql = session.get(Tag, 2)

        adapter.remove_associated_object(blog[5], "tags", sql)

        assert _tag_ids(session, 5) == [1]

    def test_remove_absent_is_noop(self, adapter, session, blog):
        orm = session.get(Tag, 3)

        adapter.remove_associated_object(blog[5], "tags", orm)

        assert _tag_ids(session, 5) == [1, 2]

    def test_add_owned(self, adapter, session, blog):
        comment = session.get(Comment, 4)

        adapter.add_associated_object(blog[5], "comments", comment)

        assert _comment_ids(session, 5) == [1, 2, 3, 4]

    def test_add_polymorphic_sets_type(self, adapter, session, blog):
        note = Note(id=50, body="added")

        adapter.add_associated_object(blog[7], "notes", note)
        session.expire_all()

        assert note.notable_type == "Post"
        assert note.notable_id == 7
        assert note in session.get(Post, 7).notes

        adapter.add_associated_object(session.get(Post, 7), "notes", note)
        assert [n.id for n in session.get(Post, 7).notes] == [50]

    def test_singular_rejected(self, adapter, session, blog):
        with pytest.raises(AssociationError):
            adapter.add_associated_object(blog[5], "author", session.get(Author, 2))

    def test_indirect_rejected(self, adapter, blog):
        with pytest.raises(AssociationError):
            adapter.remove_associated_object(blog[5], "commenter_names", "carol")

    def test_new_associated_object_values(self, adapter, blog):
        assert adapter.new_associated_object_values(Post, "comments", blog[5]) == {"post_id": 5}
        assert adapter.new_associated_object_values(Post, "notes", blog[5]) == {
            "notable_id": 5,
            "notable_type": "Post",
        }


class TestReassignAndMerge:
    """Tests for bulk reassignment and record merging."""

    def test_reassign_has_many(self, adapter, session, blog):
        count = adapter.reassign_association(Post, "comments", 5, 7)

        assert count == 3
        assert _comment_ids(session, 5) == []
        assert _comment_ids(session, 7) == [1, 2, 3, 4]

    def test_reassign_refreshes_loaded_collections(self, adapter, blog):
        assert len(blog[7].comments) == 1

        adapter.reassign_association(Post, "comments", 5, 7)

        assert len(blog[7].comments) == 4

    def test_reassign_join_table(self, adapter, session, blog):
        count = adapter.reassign_association(Post, "tags", 5, 9)

        assert count == 2
        assert _tag_ids(session, 5) == []
        assert _tag_ids(session, 9) == [1, 2]

    def test_reassign_respects_discriminator(self, adapter, session, blog):
        count = adapter.reassign_association(Post, "notes", 5, 7)

        assert count == 1
        assert session.get(Note, 1).notable_id == 7
        assert session.get(Note, 2).notable_id == 5

    def test_reassign_skips_belongs_to_and_indirect(self, adapter, blog):
        assert adapter.reassign_association(Post, "author", 5, 7) == 0
        assert adapter.reassign_association(Post, "commenter_names", 5, 7) == 0

    def test_merge_records(self, adapter, session, blog):
        assert adapter.merge_records(Post, "5", 7) is True

        with pytest.raises(RecordNotFoundError):
            adapter.get_object(Post, 5)
        assert _comment_ids(session, 7) == [1, 2, 3, 4]
        assert _tag_ids(session, 7) == [1, 2, 3]
        assert session.get(Note, 1).notable_id == 7
        assert session.get(Note, 2).notable_id == 5
        assert session.scalar(select(func.count()).select_from(Post)) == 3

    def test_merge_same_record(self, adapter, session, blog):
        assert adapter.merge_records(Post, 5, "5") is False
        assert session.get(Post, 5) is not None

    def test_merge_missing_target(self, adapter, session, blog):
        with pytest.raises(RecordNotFoundError):
            adapter.merge_records(Post, 5, 999)

        assert _comment_ids(session, 5) == [1, 2, 3]


class TestAdapterFactory:
    """Tests for get_adapter."""

    def test_sqlalchemy(self, session, registry, settings):
        adapter = get_adapter("sqlalchemy", session=session, registry=registry, settings=settings)

        assert isinstance(adapter, SQLAlchemyModelAdapter)
        assert adapter.orm == "sqlalchemy"
        assert adapter.registry is registry

    def test_alias(self, session, registry, settings):
        assert isinstance(get_adapter("SQLA", session=session, registry=registry, settings=settings), SQLAlchemyModelAdapter)

    def test_missing_session(self):
        with pytest.raises(ConfigurationError):
            get_adapter("sqlalchemy")

    def test_unsupported_orm(self, session):
        with pytest.raises(AdapterError):
            get_adapter("datamapper", session=session)
