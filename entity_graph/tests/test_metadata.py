import pytest

from entity_graph import (
    EntityManager,
    ForeignKeySerde,
    IdSerde,
    InvariantViolation,
    PrimitiveSerde,
    foreign_key_column,
    id_column,
    primitive_column,
)
from entity_graph.tests.domain import Author, Book, author_meta, book_meta


def test_table_name_defaults_to_pluralized_entity_name() -> None:
    assert author_meta.table_name == "authors"
    assert book_meta.table_name == "books"


def test_data_columns_skip_identity() -> None:
    assert [column.column_name for column in book_meta.columns] == ["id", "title", "author_id"]
    assert [column.column_name for column in book_meta.data_columns] == ["title", "author_id"]


@pytest.mark.parametrize(
    "column, expected_name, expected_serde",
    [
        (id_column(), "id", IdSerde()),
        (primitive_column("firstName", "text"), "first_name", PrimitiveSerde("firstName", "first_name")),
        (primitive_column("title", "text", "book_title"), "book_title", PrimitiveSerde("title", "book_title")),
        (foreign_key_column("author", "authors"), "author_id", ForeignKeySerde("author", "author_id")),
    ],
)
def test_column_helpers(column, expected_name, expected_serde) -> None:
    assert column.column_name == expected_name
    assert column.serde == expected_serde


def test_id_serde_leaves_missing_identity_to_the_database() -> None:
    row = {}
    IdSerde().set_on_row({"id": None}, row)
    assert row == {}

    IdSerde().set_on_row({"id": 4}, row)
    assert row == {"id": 4}


def test_foreign_key_serde_writes_identity_of_referenced_entity(memory_em: EntityManager) -> None:
    author = Author.from_row(memory_em, {"id": 7, "first_name": "a1"})
    book = memory_em.create(Book, title="b1", author=author)
    row = {}

    ForeignKeySerde("author", "author_id").set_on_row(book._orm.data, row)

    assert row == {"author_id": 7}
    assert ForeignKeySerde("author", "author_id").get_from_entity(book) == 7


def test_foreign_key_serde_passes_raw_identity_through() -> None:
    row = {}
    ForeignKeySerde("author", "author_id").set_on_row({"author": 3}, row)
    assert row == {"author_id": 3}


def test_foreign_key_serde_requires_inserted_entity(memory_em: EntityManager) -> None:
    book = memory_em.create(Book, title="b1", author=memory_em.create(Author))

    with pytest.raises(InvariantViolation):
        ForeignKeySerde("author", "author_id").set_on_row(book._orm.data, {})
