"""Unit tests for storage.media_store module."""

from src.storage.media_store import source_key
from src.storage.models import MediaFile, MediaStatus

SIGNED_URL = "https://prod-files-secure.s3.us-west-2.amazonaws.com/ws/f/diagram.png?X-Amz-Signature=abc"
RESIGNED_URL = "https://prod-files-secure.s3.us-west-2.amazonaws.com/ws/f/diagram.png?X-Amz-Signature=xyz#top"


class TestSourceKey:
    """Test cases for source_key."""

    def test_strips_query_and_fragment(self):
        assert source_key(RESIGNED_URL) == "https://prod-files-secure.s3.us-west-2.amazonaws.com/ws/f/diagram.png"

    def test_plain_url_unchanged(self):
        assert source_key("https://example.com/a.png") == "https://example.com/a.png"


class TestMediaStore:
    """Test cases for MediaStore."""

    def test_save_and_find_by_resigned_url(self, media_store):
        media_store.save(MediaFile(
            source_key=source_key(SIGNED_URL),
            source_url=SIGNED_URL,
            status=MediaStatus.DOWNLOADED,
            file_name="abc.png",
            mime_type="image/png",
            size=120,
            local_content_id=4,
        ))

        media = media_store.get(RESIGNED_URL)

        assert media.status == MediaStatus.DOWNLOADED
        assert (media.file_name, media.mime_type, media.size) == ("abc.png", "image/png", 120)
        assert media.local_content_id == 4
        assert media.created_at is not None

    def test_first_referencing_record_kept(self, media_store):
        key = source_key(SIGNED_URL)
        media_store.save(MediaFile(key, SIGNED_URL, MediaStatus.EXTERNAL, local_content_id=4))
        media_store.save(MediaFile(key, RESIGNED_URL, MediaStatus.DOWNLOADED, file_name="abc.png", local_content_id=9))

        media = media_store.get(SIGNED_URL)
        assert media.local_content_id == 4
        assert media.source_url == RESIGNED_URL
        assert media.status == MediaStatus.DOWNLOADED

    def test_record_failure_counts_attempts(self, media_store):
        first = media_store.record_failure(SIGNED_URL, "HTTP 403", local_content_id=4)
        second = media_store.record_failure(RESIGNED_URL, "timed out")

        assert first.error_count == 1
        assert second.error_count == 2
        stored = media_store.get(SIGNED_URL)
        assert stored.status == MediaStatus.FAILED
        assert stored.last_error == "timed out"
        assert stored.local_content_id == 4

    def test_get_unknown(self, media_store):
        assert media_store.get(SIGNED_URL) is None

    def test_stats_lists_every_status(self, media_store):
        media_store.save(MediaFile("https://a/1.png", "https://a/1.png", MediaStatus.DOWNLOADED, file_name="1.png"))
        media_store.save(MediaFile("https://a/2.png", "https://a/2.png", MediaStatus.DOWNLOADED, file_name="2.png"))
        media_store.record_failure("https://a/3.png", "HTTP 500")

        assert media_store.stats() == {'downloaded': 2, 'unsupported': 0, 'external': 0, 'failed': 1}
