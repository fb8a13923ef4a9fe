"""
Test script for the persisted snapshot and the write-through workspace.
"""

import sys
import os
import json

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from workload_scheduler.models import Store
from workload_scheduler.services import catalog, variants
from workload_scheduler.services.persistence import SnapshotRepository
from workload_scheduler.services.workspace import Workspace
from workload_scheduler.core.exceptions import MutationRefused, RefusalReason
from workload_scheduler.core.config import STORAGE_KEY, DEFAULT_SCHEDULE_NAME


def test_missing_file_loads_as_none(tmp_path):
    repository = SnapshotRepository(str(tmp_path / "missing.json"))
    assert repository.load() is None


def test_unreadable_file_loads_as_none(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{ not json", encoding="utf-8")
    assert SnapshotRepository(str(path)).load() is None
    assert not path.exists()

    path.write_text("[1, 2, 3]", encoding="utf-8")
    assert SnapshotRepository(str(path)).load() is None

    kept = sorted(p.read_text(encoding="utf-8") for p in tmp_path.glob("broken.json.corrupt-*"))
    assert kept == ["[1, 2, 3]", "{ not json"]


def test_save_writes_store_under_key(tmp_path):
    path = tmp_path / "nested" / "data.json"
    repository = SnapshotRepository(str(path))
    store = Store()
    catalog.add_program(store, "MATH")

    repository.save(store)

    document = json.loads(path.read_text(encoding="utf-8"))
    assert list(document) == [STORAGE_KEY]
    assert document[STORAGE_KEY]["programs"][0]["name"] == "MATH"
    assert repository.load() == store.to_dict()
    assert [p.name for p in tmp_path.joinpath("nested").iterdir()] == ["data.json"]


def test_open_migrates_and_writes_back(tmp_path):
    """A legacy snapshot is upgraded on open and saved in the current shape."""
    print("=" * 60)
    print("TESTING WORKSPACE OPEN")
    print("=" * 60)

    path = tmp_path / "data.json"
    legacy = {"courses": [{"id": "c1", "name": "Algebra", "credits": 5}], "classrooms": [], "schedule": {}}
    path.write_text(json.dumps({STORAGE_KEY: legacy}), encoding="utf-8")

    workspace = Workspace.open(SnapshotRepository(str(path)))

    assert [c.id for c in workspace.store.course_catalog] == ["c1"]
    saved = json.loads(path.read_text(encoding="utf-8"))[STORAGE_KEY]
    assert saved["courseCatalog"][0]["id"] == "c1"
    assert saved["currentSchedule"] == DEFAULT_SCHEDULE_NAME


def test_apply_writes_through(tmp_path):
    path = tmp_path / "data.json"
    workspace = Workspace.open(SnapshotRepository(str(path)))

    program = workspace.apply(catalog.add_program, "MATH")
    workspace.apply(catalog.add_course, "Algebra", 5, program.id)

    reopened = Workspace.open(SnapshotRepository(str(path)))
    assert reopened.store == workspace.store
    assert [c.name for c in reopened.store.course_catalog] == ["Algebra"]


def test_refused_mutation_changes_nothing(tmp_path):
    path = tmp_path / "data.json"
    workspace = Workspace.open(SnapshotRepository(str(path)))
    before_store = workspace.store
    before_file = path.read_text(encoding="utf-8")

    with pytest.raises(MutationRefused) as excinfo:
        workspace.apply(variants.delete_variant, DEFAULT_SCHEDULE_NAME)

    assert excinfo.value.reason == RefusalReason.LAST_VARIANT
    assert workspace.store is before_store
    assert path.read_text(encoding="utf-8") == before_file


def test_workspace_validate_defaults_to_current(tmp_path):
    workspace = Workspace.open(SnapshotRepository(str(tmp_path / "data.json")))
    diagnostics = workspace.validate()
    assert [d.kind.value for d in diagnostics] == ["missing_quarter"]

    workspace.apply(variants.set_variant_quarter, "Fall")
    assert workspace.validate() == []


def test_open_keeps_truncated_snapshot(tmp_path):
    """A truncated file is moved aside instead of being overwritten by the default store."""
    print("=" * 60)
    print("TESTING CORRUPT SNAPSHOT ON OPEN")
    print("=" * 60)

    path = tmp_path / "data.json"
    truncated = json.dumps({STORAGE_KEY: {"programs": [], "courseCatalog": []}})[:-7]
    path.write_text(truncated, encoding="utf-8")

    workspace = Workspace.open(SnapshotRepository(str(path)))

    corrupt = list(tmp_path.glob("data.json.corrupt-*"))
    assert len(corrupt) == 1
    assert corrupt[0].read_text(encoding="utf-8") == truncated
    assert workspace.store == Store()
    assert json.loads(path.read_text(encoding="utf-8"))[STORAGE_KEY] == Store().to_dict()


def test_open_keeps_unrecognized_snapshot(tmp_path):
    path = tmp_path / "data.json"
    original = json.dumps({STORAGE_KEY: {"somethingElse": True}})
    path.write_text(original, encoding="utf-8")

    workspace = Workspace.open(SnapshotRepository(str(path)))

    corrupt = list(tmp_path.glob("data.json.corrupt-*"))
    assert [p.read_text(encoding="utf-8") for p in corrupt] == [original]
    assert workspace.store == Store()


def test_open_without_snapshot_moves_nothing(tmp_path):
    path = tmp_path / "data.json"
    Workspace.open(SnapshotRepository(str(path)))
    Workspace.open(SnapshotRepository(str(path)))
    assert list(tmp_path.glob("*.corrupt-*")) == []


class FailingRepository(SnapshotRepository):
    def save(self, store):
        raise OSError("disk full")


def test_failed_save_keeps_live_store(tmp_path):
    """The live store is only replaced once the new state is on disk."""
    workspace = Workspace(FailingRepository(str(tmp_path / "data.json")))
    before = workspace.store

    with pytest.raises(OSError):
        workspace.apply(catalog.add_program, "MATH")

    assert workspace.store is before
    assert workspace.store.programs == []
