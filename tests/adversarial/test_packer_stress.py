"""Adversarial tests: packer determinism and fingerprint uniqueness under load."""

from __future__ import annotations

import random
import threading

from assetforge.core.hasher import fingerprint
from assetforge.core.manifest import Manifest, invert
from assetforge.core.packer import Packer
from assetforge.core.store import MemoryStore


def _entries(count: int) -> list[tuple[str, bytes]]:
    return [(f"/bulk/dir{i % 37}/file{i}.txt", f"content {i}".encode()) for i in range(count)]


class TestFingerprintUniqueness:
    def test_ten_thousand_names_do_not_collide(self):
        packer = Packer(MemoryStore())
        for name, data in _entries(10_000):
            packer.pack(name, data)

        forward = packer.manifest()
        assert len(forward) == 10_000
        reverse = invert(forward)
        assert len(reverse) == 10_000

    def test_same_content_different_names_differ(self):
        packer = Packer()
        for i in range(500):
            packer.pack(f"/same/{i}.css", b"body{}")
        assert len(set(packer.manifest().values())) == 500

    def test_round_trip_inversion(self):
        packer = Packer()
        for name, data in _entries(2_000):
            packer.pack(name, data)
        manifest = Manifest.from_forward(packer.manifest())
        for name, fp in manifest.forward.items():
            assert manifest.reverse_path(fp) == name
            assert manifest.path(name) == fp


class TestDeterminism:
    def test_packing_order_does_not_matter(self):
        entries = _entries(1_000)
        shuffled = entries[:]
        random.Random(7).shuffle(shuffled)

        a, b = Packer(), Packer()
        for name, data in entries:
            a.pack(name, data)
        for name, data in shuffled:
            b.pack(name, data)
        assert a.manifest() == b.manifest()
        assert a.manifest_bytes() == b.manifest_bytes()

    def test_concurrent_packers_and_readers(self):
        entries = _entries(4_000)
        packer = Packer()
        errors: list[BaseException] = []
        done = threading.Event()

        def writer(chunk):
            try:
                for name, data in chunk:
                    packer.pack(name, data)
            except Exception as exc:  # pragma: no cover - surfaced below
                errors.append(exc)

        def reader():
            try:
                while not done.is_set():
                    snapshot = packer.manifest()
                    for name, fp in snapshot.items():
                        assert fp == fingerprint(name, packer.read(name))
            except Exception as exc:  # pragma: no cover - surfaced below
                errors.append(exc)

        writers = [threading.Thread(target=writer, args=(entries[i::8],)) for i in range(8)]
        readers = [threading.Thread(target=reader) for _ in range(3)]
        for t in readers + writers:
            t.start()
        for t in writers:
            t.join()
        done.set()
        for t in readers:
            t.join()

        assert errors == []
        expected = Packer()
        for name, data in entries:
            expected.pack(name, data)
        assert packer.manifest() == expected.manifest()

    def test_repacking_a_name_tracks_latest_content(self):
        packer = Packer()
        for i in range(100):
            packer.pack("/app.js", f"v{i}".encode())
        assert packer.manifest() == {"/app.js": fingerprint("/app.js", b"v99")}
