"""Tests for visibility, search and pagination of read operations."""
import pytest

from memoria.exceptions import InvalidInputError, NotFoundError
from memoria.schemas.album import AlbumCreate
from memoria.schemas.photo import PhotoCreate
from memoria.services.album import AlbumService
from memoria.services.photo import PhotoService


def photo_data(title: str, **kwargs) -> PhotoCreate:
    key = f"photos/1/{title.lower().replace(' ', '-')}.jpg"
    return PhotoCreate(title=title, storage_id=key, thumbnail_storage_id=key, **kwargs)


@pytest.fixture
def albums(db):
    return AlbumService(db)


@pytest.fixture
def photos(db):
    return PhotoService(db)


class TestVisibility:
    """Private albums and their photos are visible to their owner only."""

    @pytest.mark.asyncio
    async def test_private_album_hidden_from_others(self, albums, alice, bob):
        album = await albums.create_album(alice, AlbumCreate(title="Diary", is_public=False))

        assert (await albums.get_album_by_id(album.id, alice)).id == album.id
        with pytest.raises(NotFoundError):
            await albums.get_album_by_id(album.id, bob)
        with pytest.raises(NotFoundError):
            await albums.get_album_by_id(album.id, None)

    @pytest.mark.asyncio
    async def test_private_photo_hidden_from_others(self, albums, photos, alice, bob):
        album = await albums.create_album(alice, AlbumCreate(title="Diary", is_public=False))
        photo = await photos.add_photo(album.id, alice, photo_data("Secret"))

        assert (await photos.get_photo_by_id(photo.id, alice)).id == photo.id
        with pytest.raises(NotFoundError):
            await photos.get_photo_by_id(photo.id, bob)
        items, _, _ = await photos.get_photos_by_album(album.id, bob)
        assert items == []
        assert await photos.get_photo_count_by_album(album.id, bob) == 0
        assert await photos.get_photo_count_by_album(album.id, alice) == 1

    @pytest.mark.asyncio
    async def test_include_private_only_for_owner(self, albums, alice, bob):
        await albums.create_album(alice, AlbumCreate(title="Public", is_public=True))
        await albums.create_album(alice, AlbumCreate(title="Private", is_public=False))

        own, _, _ = await albums.get_albums_by_user(alice.id, alice, include_private=True)
        own_public, _, _ = await albums.get_albums_by_user(alice.id, alice, include_private=False)
        seen_by_bob, _, _ = await albums.get_albums_by_user(alice.id, bob, include_private=True)

        assert [a.title for a in own] == ["Private", "Public"]
        assert [a.title for a in own_public] == ["Public"]
        assert [a.title for a in seen_by_bob] == ["Public"]

    @pytest.mark.asyncio
    async def test_album_count_by_viewer(self, albums, alice, bob):
        await albums.create_album(alice, AlbumCreate(title="Public", is_public=True))
        await albums.create_album(alice, AlbumCreate(title="Private", is_public=False))

        assert await albums.get_album_count_by_user(alice.id, alice) == 2
        assert await albums.get_album_count_by_user(alice.id, bob) == 1
        assert await albums.get_album_count_by_user(alice.id) == 1

    @pytest.mark.asyncio
    async def test_photos_by_user(self, albums, photos, alice, bob):
        public = await albums.create_album(alice, AlbumCreate(title="Public", is_public=True))
        private = await albums.create_album(alice, AlbumCreate(title="Private", is_public=False))
        await photos.add_photo(public.id, alice, photo_data("Shared"))
        await photos.add_photo(private.id, alice, photo_data("Hidden"))

        own, _, _ = await photos.get_photos_by_user(alice.id, alice)
        others, _, _ = await photos.get_photos_by_user(alice.id, bob)

        assert {p.title for p in own} == {"Shared", "Hidden"}
        assert [p.title for p in others] == ["Shared"]

    @pytest.mark.asyncio
    async def test_public_albums(self, albums, alice, bob):
        await albums.create_album(alice, AlbumCreate(title="A", is_public=True))
        await albums.create_album(bob, AlbumCreate(title="B", is_public=False))
        await albums.create_album(bob, AlbumCreate(title="C", is_public=True))

        items, next_cursor, is_done = await albums.get_public_albums()

        assert [a.title for a in items] == ["C", "A"]
        assert next_cursor is None
        assert is_done is True


class TestSearch:
    """Substring search, case-insensitive, unranked."""

    @pytest.mark.asyncio
    async def test_empty_query_returns_nothing(self, albums, photos, alice):
        await albums.create_album(alice, AlbumCreate(title="Trip", is_public=True))

        assert await albums.search_albums("") == []
        assert await photos.search_photos("", viewer=alice) == []

    @pytest.mark.asyncio
    async def test_query_is_matched_as_typed(self, albums, photos, alice):
        album = await albums.create_album(alice, AlbumCreate(title="Summer Trip", is_public=True))
        await albums.create_album(alice, AlbumCreate(title="Tripod", is_public=True))
        await photos.add_photo(album.id, alice, photo_data("Road trip"))
        await photos.add_photo(album.id, alice, photo_data("Tripod shot"))

        assert [a.title for a in await albums.search_albums(" trip")] == ["Summer Trip"]
        assert [p.title for p in await photos.search_photos(" TRIP", viewer=alice)] == ["Road trip"]
        assert await albums.search_albums("   ") == []

    @pytest.mark.asyncio
    async def test_album_search_public_only(self, albums, alice):
        await albums.create_album(alice, AlbumCreate(title="Summer Trip", is_public=True))
        await albums.create_album(alice, AlbumCreate(title="Work", description="trip report", is_public=True))
        await albums.create_album(alice, AlbumCreate(title="Secret trip", is_public=False))

        results = await albums.search_albums("TRIP")

        assert [a.title for a in results] == ["Work", "Summer Trip"]

    @pytest.mark.asyncio
    async def test_album_search_limit(self, albums, alice):
        for i in range(5):
            await albums.create_album(alice, AlbumCreate(title=f"Trip {i}", is_public=True))

        results = await albums.search_albums("trip", limit=2)

        assert [a.title for a in results] == ["Trip 4", "Trip 3"]

    @pytest.mark.asyncio
    async def test_photo_search_matches_title_description_and_tags(self, albums, photos, alice):
        album = await albums.create_album(alice, AlbumCreate(title="Trip", is_public=True))
        await photos.add_photo(album.id, alice, photo_data("Beach"))
        await photos.add_photo(album.id, alice, photo_data("Hotel", description="near the beach"))
        await photos.add_photo(album.id, alice, photo_data("Dinner", tags=["Beachside"]))
        await photos.add_photo(album.id, alice, photo_data("Airport"))

        results = await photos.search_photos("beach")

        assert [p.title for p in results] == ["Dinner", "Hotel", "Beach"]

    @pytest.mark.asyncio
    async def test_photo_search_respects_visibility(self, albums, photos, alice, bob):
        public = await albums.create_album(alice, AlbumCreate(title="Public", is_public=True))
        private = await albums.create_album(alice, AlbumCreate(title="Private", is_public=False))
        await photos.add_photo(public.id, alice, photo_data("Cat outside"))
        await photos.add_photo(private.id, alice, photo_data("Cat inside"))

        as_owner = await photos.search_photos("cat", viewer=alice)
        as_other = await photos.search_photos("cat", viewer=bob)
        anonymous = await photos.search_photos("cat")

        assert {p.title for p in as_owner} == {"Cat outside", "Cat inside"}
        assert [p.title for p in as_other] == ["Cat outside"]
        assert [p.title for p in anonymous] == ["Cat outside"]

    @pytest.mark.asyncio
    async def test_explore_only_public(self, albums, photos, alice):
        public = await albums.create_album(alice, AlbumCreate(title="Public", is_public=True))
        private = await albums.create_album(alice, AlbumCreate(title="Private", is_public=False))
        for i in range(4):
            await photos.add_photo(public.id, alice, photo_data(f"Open {i}"))
        await photos.add_photo(private.id, alice, photo_data("Closed"))

        everything = await photos.get_explore_photos(limit=50)
        sample = await photos.get_explore_photos(limit=2)

        assert {p.title for p in everything} == {f"Open {i}" for i in range(4)}
        assert len(sample) == 2
        assert all(p.album_id == public.id for p in sample)


class TestPagination:
    """Keyset pagination, newest first."""

    @pytest.mark.asyncio
    async def test_walks_all_pages(self, albums, alice):
        for i in range(5):
            await albums.create_album(alice, AlbumCreate(title=f"Album {i}", is_public=True))

        seen = []
        cursor = None
        pages = 0
        while True:
            items, cursor, is_done = await albums.get_public_albums(limit=2, cursor=cursor)
            seen.extend(a.title for a in items)
            pages += 1
            if is_done:
                break

        assert pages == 3
        assert cursor is None
        assert seen == [f"Album {i}" for i in range(4, -1, -1)]

    @pytest.mark.asyncio
    async def test_exact_page_is_done(self, albums, alice):
        for i in range(2):
            await albums.create_album(alice, AlbumCreate(title=f"Album {i}", is_public=True))

        items, next_cursor, is_done = await albums.get_public_albums(limit=2)

        assert len(items) == 2
        assert next_cursor is None
        assert is_done is True

    @pytest.mark.asyncio
    async def test_bad_cursor(self, albums):
        with pytest.raises(InvalidInputError):
            await albums.get_public_albums(cursor="%%%")
