"""Tests for importing and transferring entries between databases."""

import uuid
from datetime import UTC, datetime

import pytest

from kdbxdiff import Database
from kdbxdiff.engine.merge import (
    ImportMode,
    Transfer,
    TransferAction,
    TransferDirection,
    import_entries,
    transfer,
)
from kdbxdiff.exceptions import InvalidModeError, InvalidTransferError
from kdbxdiff.testing import add_entry, make_database


class TestImportEntries:
    """Tests for bulk import."""

    @pytest.fixture
    def source(self) -> Database:
        """Five entries in a database named Phone."""
        db = make_database("Phone")
        add_entry(db, "Banking", title="Bank", username="alice", uuid="00000000-0000-0000-0000-000000000001")
        add_entry(db, "Banking", title="Card", username="alice", uuid="00000000-0000-0000-0000-000000000002")
        add_entry(db, "Web/Social", title="Forum", username="al")
        add_entry(db, title="Wifi", username="home")
        add_entry(db, "Web", title="Shop", username="al")
        return db

    @pytest.fixture
    def target(self) -> Database:
        """Two entries sharing UUIDs with the source."""
        db = make_database("Laptop")
        add_entry(db, "Money", title="Bank", username="alice", uuid="00000000-0000-0000-0000-000000000001")
        add_entry(db, title="Card (renamed)", username="a", uuid="00000000-0000-0000-0000-000000000002")
        return db

    def test_skip_existing(self, source: Database, target: Database) -> None:
        """Test that only entries without a counterpart are imported."""
        result = import_entries(source, target, "skip-existing")

        assert result.imported == 3
        assert result.skipped == 0
        titles = sorted(e.title or "" for e in target.entries())
        assert titles == ["Bank", "Card (renamed)", "Forum", "Shop", "Wifi"]

    def test_imported_entries_keep_uuid(self, source: Database, target: Database) -> None:
        """Test that copies keep the source UUID."""
        import_entries(source, target, ImportMode.SKIP_EXISTING)

        for entry in source.entries():
            assert target.find_entry_by_uuid(entry.uuid) is not None

    def test_group_paths_recreated(self, source: Database, target: Database) -> None:
        """Test that group paths are rebuilt under the target root."""
        import_entries(source, target, "skip-existing")

        paths = {e.title: e.parent.path for e in target.entries() if e.parent is not None}
        assert paths["Forum"] == ["Phone", "Web", "Social"]
        assert paths["Shop"] == ["Phone", "Web"]
        assert paths["Wifi"] == ["Phone"]

    def test_same_root_name_lands_under_root(self, source: Database) -> None:
        """Test that a matching root name is not duplicated as a group."""
        target = make_database("Phone")
        import_entries(source, target, "all")

        paths = {e.title: e.parent.path for e in target.entries() if e.parent is not None}
        assert paths["Wifi"] == []
        assert paths["Forum"] == ["Web", "Social"]
        assert len(target.find_groups(name="Web")) == 1

    def test_selected(self, source: Database, target: Database) -> None:
        """Test importing a chosen subset with unresolvable ids skipped."""
        wifi = next(e for e in source.entries() if e.title == "Wifi")

        result = import_entries(
            source, target, "selected", [str(wifi.uuid), uuid.uuid4(), "junk"]
        )

        assert result.imported == 1
        assert result.skipped == 2
        assert target.find_entry_by_uuid(wifi.uuid) is not None

    def test_all_may_duplicate_uuids(self, source: Database, target: Database) -> None:
        """Test that "all" copies everything, even matched entries."""
        result = import_entries(source, target, "all")

        assert result.imported == 5
        assert len(target.entries()) == 7

    def test_attachments_copied(self, source: Database, target: Database) -> None:
        """Test that attachment data moves with the entry."""
        wifi = next(e for e in source.entries() if e.title == "Wifi")
        source.add_attachment(wifi, "qr.png", b"PNGDATA")

        import_entries(source, target, "selected", [wifi.uuid])

        copied = target.find_entry_by_uuid(wifi.uuid)
        assert copied is not None
        assert target.get_attachment(copied, "qr.png") == b"PNGDATA"

    def test_invalid_mode(self, source: Database, target: Database) -> None:
        """Test that an unknown mode raises before touching the target."""
        before = len(target.entries())
        with pytest.raises(InvalidModeError) as exc_info:
            import_entries(source, target, "everything")

        assert exc_info.value.mode == "everything"
        assert len(target.entries()) == before


class TestTransfer:
    """Tests for per-entry transfers."""

    @pytest.fixture
    def dbs(self) -> tuple[Database, Database]:
        db_a = make_database("A")
        db_b = make_database("B")
        add_entry(db_a, "Finance", title="Shared", password="old", uuid="00000000-0000-0000-0000-00000000000a")
        add_entry(
            db_b,
            "Money",
            title="Shared",
            password="new",
            uuid="00000000-0000-0000-0000-00000000000a",
            modified=datetime(2025, 6, 1, tzinfo=UTC),
        )
        add_entry(db_a, "Finance", title="Only A", uuid="00000000-0000-0000-0000-00000000000b")
        add_entry(db_b, "Deep/Nested", title="Only B", uuid="00000000-0000-0000-0000-00000000000c")
        return db_a, db_b

    def test_copy_both_directions(self, dbs: tuple[Database, Database]) -> None:
        """Test copies land in the receiving root group."""
        db_a, db_b = dbs
        result = transfer(
            db_a,
            db_b,
            [
                {"uuid": "00000000-0000-0000-0000-00000000000b", "action": "copy", "direction": "toB"},
                {"uuid": "00000000-0000-0000-0000-00000000000c", "action": "copy", "direction": "toA"},
            ],
        )

        assert result.to_dict() == {"copiedToA": 1, "copiedToB": 1, "overwritten": 0, "skipped": 0}
        only_b_in_a = db_a.find_entry_by_uuid(uuid.UUID("00000000-0000-0000-0000-00000000000c"))
        assert only_b_in_a is not None
        assert only_b_in_a.parent is db_a.root_group

    def test_overwrite(self, dbs: tuple[Database, Database]) -> None:
        """Test overwrite keeps the receiver's identity and group."""
        db_a, db_b = dbs
        shared_uuid = uuid.UUID("00000000-0000-0000-0000-00000000000a")
        target = db_a.find_entry_by_uuid(shared_uuid)
        assert target is not None
        group = target.parent

        result = transfer(
            db_a, db_b, [Transfer(shared_uuid, TransferAction.OVERWRITE, TransferDirection.TO_A)]
        )

        assert result.overwritten == 1
        assert target.password == "new"
        assert target.uuid == shared_uuid
        assert target.parent is group
        assert target.times.last_modification_time == datetime(2025, 6, 1, tzinfo=UTC)
        assert len(db_a.entries()) == 2

    def test_overwrite_requires_both_sides(self, dbs: tuple[Database, Database]) -> None:
        """Test that overwriting a one-sided entry is skipped."""
        db_a, db_b = dbs
        result = transfer(
            db_a,
            db_b,
            [{"uuid": "00000000-0000-0000-0000-00000000000b", "action": "overwrite", "direction": "toB"}],
        )
        assert result.skipped == 1
        assert result.overwritten == 0

    def test_unresolvable_ids_skipped(self, dbs: tuple[Database, Database]) -> None:
        """Test unknown and unparseable ids are counted as skipped."""
        db_a, db_b = dbs
        result = transfer(
            db_a,
            db_b,
            [
                {"uuid": str(uuid.uuid4()), "action": "copy", "direction": "toB"},
                {"uuid": "not-a-uuid", "action": "copy", "direction": "toA"},
                # Only B is not in A, so copying it toB has no source
                {"uuid": "00000000-0000-0000-0000-00000000000c", "action": "copy", "direction": "toB"},
            ],
        )
        assert result.skipped == 3

    @pytest.mark.parametrize(
        "bad",
        [
            {"uuid": "00000000-0000-0000-0000-00000000000b", "action": "move", "direction": "toB"},
            {"uuid": "00000000-0000-0000-0000-00000000000b", "action": "copy", "direction": "sideways"},
            "copy everything",
        ],
    )
    def test_invalid_batch_rejected_before_mutation(
        self, dbs: tuple[Database, Database], bad: object
    ) -> None:
        """Test that one malformed item stops the whole batch up front."""
        db_a, db_b = dbs
        good = {"uuid": "00000000-0000-0000-0000-00000000000b", "action": "copy", "direction": "toB"}

        with pytest.raises(InvalidTransferError):
            transfer(db_a, db_b, [good, bad])  # type: ignore[list-item]

        assert len(db_b.entries()) == 2
