import pytest

from entity_graph import Entity, EntityManager, Field, ManyToOne, OneToMany
from entity_graph.relations import ManyToOneReference, OneToManyCollection
from entity_graph.tests.domain import Author, Book


def test_entity_collects_declared_fields() -> None:
    assert list(Author._fields) == ["first_name", "books", "image"]
    assert list(Book._fields) == ["title", "author", "tags"]


def test_entity_inherits_fields() -> None:
    class Named(Entity):
        name = Field()

    class Person(Named):
        age = Field()

    assert list(Person._fields) == ["name", "age"]


def test_entity_can_not_declare_identity() -> None:
    with pytest.raises(TypeError):

        class WithIdentity(Entity):
            id = Field()


def test_create_makes_new_dirty_entity(memory_em: EntityManager) -> None:
    author = memory_em.create(Author, first_name="a1")

    assert author.first_name == "a1"
    assert author.id is None
    assert author.is_new
    assert author.is_dirty
    assert author in memory_em.entities
    assert repr(author) == "Author#new"


def test_create_rejects_unknown_fields(memory_em: EntityManager) -> None:
    with pytest.raises(AttributeError):
        memory_em.create(Author, first_name="a1", last_name="a1")

    assert memory_em.entities == []


async def test_failed_create_is_not_flushed(em: EntityManager, fetch_rows) -> None:
    with pytest.raises(AttributeError):
        em.create(Author, first_name="ghost", last_name="x")

    await em.flush()

    assert await fetch_rows(Author) == []


def test_create_attaches_relation_proxies(memory_em: EntityManager) -> None:
    book = memory_em.create(Book, title="b1")

    assert isinstance(book.author, ManyToOneReference)
    assert isinstance(memory_em.create(Author).books, OneToManyCollection)
    assert isinstance(Book.author, ManyToOne)
    assert isinstance(Author.books, OneToMany)


def test_from_row_makes_clean_entity(memory_em: EntityManager) -> None:
    book = Book.from_row(memory_em, {"id": 3, "title": "b1", "author_id": 1})

    assert book.id == 3
    assert book.title == "b1"
    assert book.author.id == 1
    assert not book.is_new
    assert not book.is_dirty
    assert repr(book) == "Book#3"


def test_changing_a_field_marks_entity_dirty(memory_em: EntityManager) -> None:
    author = Author.from_row(memory_em, {"id": 1, "first_name": "a1"})

    author.first_name = "a1"
    assert not author.is_dirty

    author.first_name = "a2"
    assert author.is_dirty
    assert author.first_name == "a2"


def test_collections_can_not_be_assigned(memory_em: EntityManager) -> None:
    author = memory_em.create(Author)

    with pytest.raises(AttributeError):
        author.books = []


def test_collections_can_be_given_on_create(memory_em: EntityManager) -> None:
    b1 = memory_em.create(Book, title="b1")
    b2 = memory_em.create(Book, title="b2")

    author = memory_em.create(Author, first_name="a1", books=[b1, b2])

    assert author.books.get() == [b1, b2]
    assert b1.author.get() is author
