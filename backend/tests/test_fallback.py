"""
Tests for placeholder substitution on storage failure
"""

import pytest

from edulearn.services.errors import PersistenceCategory, PersistenceError, StorageError
from edulearn.services.fallback import FallbackStrategy


async def failing_upload():
    raise StorageError("bucket unreachable")


class TestFallbackStrategy:

    @pytest.mark.asyncio
    async def test_passes_real_urls_through(self):
        async def upload():
            return "https://s3/v.mp4", "https://s3/t.jpg"

        result = await FallbackStrategy("fb.mp4", "fb.jpg", enabled=True).run(upload)

        assert (result.video_url, result.thumbnail_url) == ("https://s3/v.mp4", "https://s3/t.jpg")
        assert result.used_fallback is False
        assert result.error is None

    @pytest.mark.asyncio
    async def test_substitutes_placeholders_when_enabled(self):
        result = await FallbackStrategy("fb.mp4", "fb.jpg", enabled=True).run(failing_upload)

        assert result.used_fallback is True
        assert result.video_url == "fb.mp4"
        assert result.thumbnail_url == "fb.jpg"
        assert isinstance(result.error, StorageError)

    @pytest.mark.asyncio
    async def test_reraises_when_disabled(self):
        with pytest.raises(StorageError):
            await FallbackStrategy("fb.mp4", "fb.jpg", enabled=False).run(failing_upload)

    @pytest.mark.asyncio
    async def test_persistence_errors_are_not_absorbed(self):
        async def upload():
            raise PersistenceError("rls", PersistenceCategory.AUTHORIZATION)

        with pytest.raises(PersistenceError):
            await FallbackStrategy("fb.mp4", "fb.jpg", enabled=True).run(upload)
