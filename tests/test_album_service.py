"""Tests for album and photo integrity rules at the service layer."""
import asyncio
import logging

import pytest
from pydantic import ValidationError
from sqlalchemy import func, select

from memoria.exceptions import InvalidInputError, NotFoundError, UnauthorizedError
from memoria.models.photo import Photo
from memoria.schemas.album import AlbumCreate, AlbumUpdate
from memoria.schemas.photo import PhotoCreate, PhotoUpdate
from memoria.services.album import AlbumService
from memoria.services.photo import PhotoService


def photo_data(title: str, **kwargs) -> PhotoCreate:
    key = f"photos/1/{title.lower()}.jpg"
    return PhotoCreate(title=title, storage_id=key, thumbnail_storage_id=key, **kwargs)


async def count_photos(db, album_id: int) -> int:
    result = await db.execute(select(func.count(Photo.id)).where(Photo.album_id == album_id))
    return result.scalar()


class TestCoverPhoto:
    """The album cover follows the album's photos."""

    @pytest.mark.asyncio
    async def test_first_photo_becomes_cover(self, db, alice):
        album = await AlbumService(db).create_album(alice, AlbumCreate(title="Trip", is_public=True))
        assert album.cover_photo_id is None

        photo = await PhotoService(db).add_photo(album.id, alice, photo_data("Beach"))

        album = await AlbumService(db).get_album_by_id(album.id, alice)
        assert album.cover_photo_id == photo.id

    @pytest.mark.asyncio
    async def test_second_photo_keeps_cover(self, db, alice):
        album = await AlbumService(db).create_album(alice, AlbumCreate(title="Trip", is_public=True))
        photos = PhotoService(db)
        first = await photos.add_photo(album.id, alice, photo_data("Beach"))
        await photos.add_photo(album.id, alice, photo_data("Sunset"))

        assert album.cover_photo_id == first.id

    @pytest.mark.asyncio
    async def test_photo_owner_copied_from_album(self, db, alice):
        album = await AlbumService(db).create_album(alice, AlbumCreate(title="Trip", is_public=True))
        photo = await PhotoService(db).add_photo(album.id, alice, photo_data("Beach", tags=["sea"]))

        assert photo.user_id == alice.id
        assert photo.album_id == album.id
        assert photo.tags == ["sea"]

    @pytest.mark.asyncio
    async def test_deleting_cover_reassigns_to_oldest_remaining(self, db, alice):
        album = await AlbumService(db).create_album(alice, AlbumCreate(title="Trip", is_public=True))
        photos = PhotoService(db)
        p1 = await photos.add_photo(album.id, alice, photo_data("One"))
        p2 = await photos.add_photo(album.id, alice, photo_data("Two"))
        await photos.add_photo(album.id, alice, photo_data("Three"))

        await photos.delete_photo(p1.id, alice)

        assert album.cover_photo_id == p2.id

    @pytest.mark.asyncio
    async def test_deleting_only_photo_clears_cover(self, db, alice):
        album = await AlbumService(db).create_album(alice, AlbumCreate(title="Trip", is_public=True))
        photos = PhotoService(db)
        p1 = await photos.add_photo(album.id, alice, photo_data("One"))

        await photos.delete_photo(p1.id, alice)

        assert album.cover_photo_id is None
        assert await count_photos(db, album.id) == 0

    @pytest.mark.asyncio
    async def test_deleting_non_cover_leaves_cover(self, db, alice):
        album = await AlbumService(db).create_album(alice, AlbumCreate(title="Trip", is_public=True))
        photos = PhotoService(db)
        p1 = await photos.add_photo(album.id, alice, photo_data("One"))
        p2 = await photos.add_photo(album.id, alice, photo_data("Two"))

        await photos.delete_photo(p2.id, alice)

        assert album.cover_photo_id == p1.id

    @pytest.mark.asyncio
    async def test_cover_must_belong_to_album(self, db, alice):
        albums = AlbumService(db)
        trip = await albums.create_album(alice, AlbumCreate(title="Trip", is_public=True))
        other = await albums.create_album(alice, AlbumCreate(title="Other", is_public=True))
        foreign = await PhotoService(db).add_photo(other.id, alice, photo_data("Elsewhere"))

        with pytest.raises(InvalidInputError):
            await albums.update_album(trip.id, alice, AlbumUpdate(cover_photo_id=foreign.id))

        assert trip.cover_photo_id is None

    @pytest.mark.asyncio
    async def test_cover_can_be_set_and_cleared(self, db, alice):
        albums = AlbumService(db)
        album = await albums.create_album(alice, AlbumCreate(title="Trip", is_public=True))
        photos = PhotoService(db)
        await photos.add_photo(album.id, alice, photo_data("One"))
        p2 = await photos.add_photo(album.id, alice, photo_data("Two"))

        album = await albums.update_album(album.id, alice, AlbumUpdate(cover_photo_id=p2.id))
        assert album.cover_photo_id == p2.id

        album = await albums.update_album(album.id, alice, AlbumUpdate(cover_photo_id=None))
        assert album.cover_photo_id is None


class TestCascadeDelete:
    """Deleting an album removes its photos first."""

    @pytest.mark.asyncio
    async def test_delete_album_removes_all_photos(self, db, alice):
        albums = AlbumService(db)
        album = await albums.create_album(alice, AlbumCreate(title="Trip", is_public=True))
        photos = PhotoService(db)
        for title in ("One", "Two", "Three"):
            await photos.add_photo(album.id, alice, photo_data(title))

        removed = await albums.delete_album(album.id, alice)

        assert removed == 3
        assert await count_photos(db, album.id) == 0
        with pytest.raises(NotFoundError):
            await albums.get_album_by_id(album.id, alice)

    @pytest.mark.asyncio
    async def test_delete_album_leaves_other_albums_alone(self, db, alice):
        albums = AlbumService(db)
        keep = await albums.create_album(alice, AlbumCreate(title="Keep", is_public=True))
        drop = await albums.create_album(alice, AlbumCreate(title="Drop", is_public=True))
        photos = PhotoService(db)
        await photos.add_photo(keep.id, alice, photo_data("Kept"))
        await photos.add_photo(drop.id, alice, photo_data("Dropped"))

        await albums.delete_album(drop.id, alice)

        assert await count_photos(db, keep.id) == 1

    @pytest.mark.asyncio
    async def test_delete_album_logs_removed_photos(self, db, alice, caplog):
        caplog.set_level(logging.INFO, logger="memoria")
        albums = AlbumService(db)
        album = await albums.create_album(alice, AlbumCreate(title="Trip", is_public=True))
        photos = PhotoService(db)
        for title in ("One", "Two"):
            await photos.add_photo(album.id, alice, photo_data(title))

        await albums.delete_album(album.id, alice)

        records = [r for r in caplog.records if r.getMessage() == "Album deleted"]
        assert len(records) == 1
        assert records[0].name == "memoria"
        assert records[0].event == "album"
        assert records[0].album_id == album.id
        assert records[0].photos_deleted == 2
        assert len([r for r in caplog.records if r.getMessage() == "Photo added"]) == 2

    @pytest.mark.asyncio
    async def test_delete_missing_album(self, db, alice):
        with pytest.raises(NotFoundError):
            await AlbumService(db).delete_album(9999, alice)


class TestPartialUpdates:
    """Patches apply only the fields sent and always move updated_at."""

    @pytest.mark.asyncio
    async def test_empty_album_patch_only_moves_timestamp(self, db, alice):
        albums = AlbumService(db)
        album = await albums.create_album(
            alice,
            AlbumCreate(title="Trip", description="Summer", category="travel", is_public=False),
        )
        before = album.updated_at
        snapshot = (album.title, album.description, album.category, album.is_public, album.cover_photo_id)

        await asyncio.sleep(0.01)
        album = await albums.update_album(album.id, alice, AlbumUpdate())

        assert album.updated_at > before
        assert (album.title, album.description, album.category, album.is_public, album.cover_photo_id) == snapshot

    @pytest.mark.asyncio
    async def test_album_patch_applies_sent_fields_only(self, db, alice):
        albums = AlbumService(db)
        album = await albums.create_album(
            alice, AlbumCreate(title="Trip", description="Summer", is_public=True)
        )

        album = await albums.update_album(album.id, alice, AlbumUpdate(title="Road trip"))

        assert album.title == "Road trip"
        assert album.description == "Summer"
        assert album.is_public is True

    @pytest.mark.asyncio
    async def test_album_patch_null_clears_description(self, db, alice):
        albums = AlbumService(db)
        album = await albums.create_album(
            alice, AlbumCreate(title="Trip", description="Summer", is_public=True)
        )

        album = await albums.update_album(album.id, alice, AlbumUpdate(description=None))

        assert album.description is None

    @pytest.mark.asyncio
    async def test_empty_photo_patch_only_moves_timestamp(self, db, alice):
        album = await AlbumService(db).create_album(alice, AlbumCreate(title="Trip", is_public=True))
        photos = PhotoService(db)
        photo = await photos.add_photo(album.id, alice, photo_data("Beach", description="Sand"))
        before = photo.updated_at

        await asyncio.sleep(0.01)
        photo = await photos.update_photo(photo.id, alice, PhotoUpdate())

        assert photo.updated_at > before
        assert photo.title == "Beach"
        assert photo.description == "Sand"

    def test_null_title_rejected(self):
        with pytest.raises(ValidationError):
            AlbumUpdate(title=None)
        with pytest.raises(ValidationError):
            AlbumUpdate(is_public=None)
        with pytest.raises(ValidationError):
            PhotoUpdate(title=None)


class TestOwnership:
    """Non-owners are rejected before anything is written."""

    @pytest.mark.asyncio
    async def test_update_album_by_non_owner(self, db, alice, bob):
        albums = AlbumService(db)
        album = await albums.create_album(alice, AlbumCreate(title="Trip", is_public=True))
        before = album.updated_at

        with pytest.raises(UnauthorizedError):
            await albums.update_album(album.id, bob, AlbumUpdate(title="Hacked"))

        assert not db.dirty and not db.new and not db.deleted
        album = await albums.get_album_by_id(album.id)
        assert album.title == "Trip"
        assert album.updated_at == before

    @pytest.mark.asyncio
    async def test_delete_album_by_non_owner(self, db, alice, bob):
        albums = AlbumService(db)
        album = await albums.create_album(alice, AlbumCreate(title="Trip", is_public=True))
        await PhotoService(db).add_photo(album.id, alice, photo_data("Beach"))

        with pytest.raises(UnauthorizedError):
            await albums.delete_album(album.id, bob)

        assert not db.deleted
        assert await count_photos(db, album.id) == 1

    @pytest.mark.asyncio
    async def test_add_photo_by_non_owner(self, db, alice, bob):
        album = await AlbumService(db).create_album(alice, AlbumCreate(title="Trip", is_public=True))

        with pytest.raises(UnauthorizedError):
            await PhotoService(db).add_photo(album.id, bob, photo_data("Intruder"))

        assert not db.new
        assert album.cover_photo_id is None
        assert await count_photos(db, album.id) == 0

    @pytest.mark.asyncio
    async def test_photo_mutations_by_non_owner(self, db, alice, bob):
        album = await AlbumService(db).create_album(alice, AlbumCreate(title="Trip", is_public=True))
        photos = PhotoService(db)
        photo = await photos.add_photo(album.id, alice, photo_data("Beach"))

        with pytest.raises(UnauthorizedError):
            await photos.update_photo(photo.id, bob, PhotoUpdate(title="Hacked"))
        with pytest.raises(UnauthorizedError):
            await photos.delete_photo(photo.id, bob)

        assert not db.dirty and not db.deleted
        assert photo.title == "Beach"
        assert album.cover_photo_id == photo.id


class TestScenarios:
    """End-to-end flows through the services."""

    @pytest.mark.asyncio
    async def test_album_lifecycle(self, db, alice):
        albums = AlbumService(db)
        photos = PhotoService(db)

        a1 = await albums.create_album(alice, AlbumCreate(title="Trip", is_public=True))
        p1 = await photos.add_photo(a1.id, alice, photo_data("Beach"))
        assert (await albums.get_album_by_id(a1.id)).cover_photo_id == p1.id

        p2 = await photos.add_photo(a1.id, alice, photo_data("Sunset"))
        assert (await albums.get_album_by_id(a1.id)).cover_photo_id == p1.id

        await photos.delete_photo(p1.id, alice)
        assert (await albums.get_album_by_id(a1.id)).cover_photo_id == p2.id

        await photos.delete_photo(p2.id, alice)
        assert (await albums.get_album_by_id(a1.id)).cover_photo_id is None

        await albums.delete_album(a1.id, alice)
        items, _, is_done = await photos.get_photos_by_album(a1.id, alice)
        assert items == []
        assert is_done is True
        with pytest.raises(NotFoundError):
            await albums.get_album_by_id(a1.id)

    @pytest.mark.asyncio
    async def test_non_owner_cannot_rename(self, db, alice, bob):
        albums = AlbumService(db)
        a1 = await albums.create_album(alice, AlbumCreate(title="Trip", is_public=True))

        with pytest.raises(UnauthorizedError):
            await albums.update_album(a1.id, bob, AlbumUpdate(title="Hacked"))

        assert (await albums.get_album_by_id(a1.id)).title == "Trip"
