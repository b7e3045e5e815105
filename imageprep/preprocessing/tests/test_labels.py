"""
Tests for the label registry.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from imageprep.preprocessing.labels import LabelRegistry
from imageprep.preprocessing.manifest import ManifestRecord


def _record(label, index, path="out/x.png"):
    return ManifestRecord(class_index=index, filepaths=path, labels=label, dataset="out")


class TestGetOrAssign:

    def test_assigns_dense_indices_in_order(self):
        registry = LabelRegistry()
        assert registry.get_or_assign("cats") == 0
        assert registry.get_or_assign("dogs") == 1
        assert registry.get_or_assign("birds") == 2

    def test_existing_label_unchanged(self):
        registry = LabelRegistry()
        registry.get_or_assign("cats")
        registry.get_or_assign("dogs")
        assert registry.get_or_assign("cats") == 0
        assert len(registry) == 2

    def test_snapshot_is_a_copy(self):
        registry = LabelRegistry({"cats": 0})
        snap = registry.snapshot()
        snap["dogs"] = 5
        assert registry.snapshot() == {"cats": 0}


class TestSeeding:

    def test_seeded_indices_are_kept(self):
        registry = LabelRegistry.from_records([_record("dogs", 0), _record("cats", 1)])
        assert registry.get_or_assign("cats") == 1
        assert registry.get_or_assign("dogs") == 0
        assert registry.get_or_assign("birds") == 2

    def test_first_occurrence_wins(self):
        registry = LabelRegistry.from_records([_record("cats", 0), _record("cats", 3)])
        assert registry.snapshot() == {"cats": 0}
        assert registry.get_or_assign("dogs") == 1

    def test_sparse_seed_never_collides(self):
        registry = LabelRegistry.from_records([_record("cats", 0), _record("dogs", 4)])
        assert registry.get_or_assign("birds") == 5

    def test_index_owned_by_another_label_is_skipped(self):
        registry = LabelRegistry.from_records([_record("cats", 0), _record("dogs", 0)])
        assert registry.snapshot() == {"cats": 0}
        assert registry.get_or_assign("dogs") == 1

    def test_negative_index_rejected(self):
        with pytest.raises(ValueError):
            LabelRegistry({"cats": -1})


class TestConcurrency:

    def test_concurrent_callers_get_unique_indices(self):
        registry = LabelRegistry()
        labels = [f"label_{i % 25}" for i in range(2000)]
        barrier = threading.Barrier(16)

        def worker(chunk):
            barrier.wait()
            return [(label, registry.get_or_assign(label)) for label in chunk]

        chunks = [labels[i::16] for i in range(16)]
        with ThreadPoolExecutor(max_workers=16) as executor:
            results = [pair for part in executor.map(worker, chunks) for pair in part]

        mapping = registry.snapshot()
        assert len(mapping) == 25
        assert sorted(mapping.values()) == list(range(25))
        # Every caller saw the same index for a label
        for label, index in results:
            assert mapping[label] == index

    def test_concurrent_seeded_registry_keeps_seed(self):
        registry = LabelRegistry({"cats": 0, "dogs": 1})
        with ThreadPoolExecutor(max_workers=8) as executor:
            list(executor.map(registry.get_or_assign, ["cats", "dogs", "birds", "fish"] * 100))
        mapping = registry.snapshot()
        assert mapping["cats"] == 0
        assert mapping["dogs"] == 1
        assert {mapping["birds"], mapping["fish"]} == {2, 3}
