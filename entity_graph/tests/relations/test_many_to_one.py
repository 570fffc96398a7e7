import asyncio

import pytest

from entity_graph import EntityManager, NotLoaded
from entity_graph.tests.domain import Author, Book, Tag


@pytest.fixture()
async def library(seed) -> None:
    await seed(Author, [{"id": 1, "first_name": "a1"}, {"id": 2, "first_name": "a2"}])
    await seed(Book, [{"id": 1, "title": "b1", "author_id": 1}, {"id": 2, "title": "b2", "author_id": None}])


async def test_load_resolves_through_identity_map(em: EntityManager, library: None) -> None:
    author = await em.load(Author, 1)
    book = await em.load(Book, 1)

    assert await book.author.load() is author
    assert book.author.get() is author
    assert not book.is_dirty


async def test_load_does_not_refetch(em: EntityManager, connection, library: None) -> None:
    book = await em.load(Book, 1)
    author = await book.author.load()
    connection.reset()

    assert await book.author.load() is author
    assert connection.reads() == []


async def test_concurrent_loads_share_one_fetch(em: EntityManager, connection, library: None) -> None:
    book = await em.load(Book, 1)
    connection.reset()

    first, second = await asyncio.gather(book.author.load(), book.author.load())

    assert first is second
    assert len(connection.reads()) == 1


async def test_get_before_load_raises(em: EntityManager, library: None) -> None:
    book = await em.load(Book, 1)

    assert not book.author.is_loaded
    assert book.author.id == 1
    with pytest.raises(NotLoaded):
        book.author.get()


async def test_get_uses_entity_already_in_identity_map(em: EntityManager, library: None) -> None:
    book = await em.load(Book, 1)
    author = await em.load(Author, 1)

    assert book.author.get() is author


async def test_unset_reference_is_loaded(em: EntityManager, library: None) -> None:
    book = await em.load(Book, 2)

    assert book.author.get() is None
    assert await book.author.load() is None


async def test_set_marks_owner_dirty(em: EntityManager, library: None) -> None:
    book = await em.load(Book, 1)
    a2 = await em.load(Author, 2)

    book.author.set(a2)

    assert book.author.get() is a2
    assert book.author.id == 2
    assert book.is_dirty
    assert not a2.is_dirty


async def test_set_to_current_target_is_not_a_change(em: EntityManager, library: None) -> None:
    book = await em.load(Book, 1)
    a1 = await em.load(Author, 1)

    book.author.set(a1)

    assert book.author.get() is a1
    assert not book.is_dirty


async def test_set_none_clears_reference(em: EntityManager, library: None) -> None:
    book = await em.load(Book, 1)
    a1 = await em.load(Author, 1)
    assert await a1.books.load() == [book]

    book.author = None

    assert book.author.get() is None
    assert book.is_dirty
    assert a1.books.get() == []


def test_set_adds_to_collection_on_the_other_side(memory_em: EntityManager) -> None:
    b1 = memory_em.create(Book, title="b1")
    a1 = memory_em.create(Author, first_name="a1")

    b1.author.set(a1)

    assert a1.books.get() == [b1]


def test_set_moves_owner_between_collections(memory_em: EntityManager) -> None:
    b1 = memory_em.create(Book, title="b1")
    a1 = memory_em.create(Author, first_name="a1")
    a2 = memory_em.create(Author, first_name="a2")

    b1.author = a1
    b1.author = a2

    assert a1.books.get() == []
    assert a2.books.get() == [b1]


def test_set_rejects_other_entity_types(memory_em: EntityManager) -> None:
    book = memory_em.create(Book, title="b1")

    with pytest.raises(TypeError):
        book.author.set(memory_em.create(Tag, name="t1"))


async def test_set_detaches_from_previous_target_known_by_identity(em: EntityManager, library: None) -> None:
    a1 = await em.load(Author, 1)
    a1_books = await a1.books.load()
    a2 = await em.load(Author, 2)
    book = a1_books[0]

    book.author.set(a2)

    assert a1.books.get() == []
