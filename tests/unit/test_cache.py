"""Tests for the FingerprintCache — incremental rebuild decisions."""

from __future__ import annotations

from assetforge.core.cache import FingerprintCache
from assetforge.core.hasher import md5_hex


class TestFingerprintCache:
    def test_new_source_is_changed(self, tmp_dir):
        src = tmp_dir / "logo.png"
        src.write_bytes(b"png")
        cache = FingerprintCache(tmp_dir / "cache")
        assert cache.check("logo.png", src) == md5_hex(b"png")

    def test_recorded_and_output_present_is_unchanged(self, tmp_dir):
        src = tmp_dir / "logo.png"
        src.write_bytes(b"png")
        cache = FingerprintCache(tmp_dir / "cache")
        digest = cache.check("a/logo.png", src)
        cache.output_path("a/logo.png").parent.mkdir(parents=True)
        cache.output_path("a/logo.png").write_bytes(b"out")
        cache.record("a/logo.png", digest)
        assert cache.hash_path("a/logo.png").name == "logo.png.md5"
        assert cache.check("a/logo.png", src) is None

    def test_missing_output_forces_rebuild(self, tmp_dir):
        src = tmp_dir / "logo.png"
        src.write_bytes(b"png")
        cache = FingerprintCache(tmp_dir / "cache")
        cache.record("logo.png", md5_hex(b"png"))
        assert cache.check("logo.png", src) is not None

    def test_content_change_forces_rebuild(self, tmp_dir):
        src = tmp_dir / "logo.png"
        src.write_bytes(b"v1")
        cache = FingerprintCache(tmp_dir / "cache")
        cache.output_path("logo.png").parent.mkdir(parents=True)
        cache.output_path("logo.png").write_bytes(b"out")
        cache.record("logo.png", md5_hex(b"v1"))
        src.write_bytes(b"v2")
        assert cache.check("logo.png", src) == md5_hex(b"v2")

    def test_cached_hash_absent(self, tmp_dir):
        assert FingerprintCache(tmp_dir).cached_hash("nothing.png") is None
