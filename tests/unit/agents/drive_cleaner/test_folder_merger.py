"""
Unit tests for FolderMergeExecutor and merge_duplicate_folders (Phase 1).

Tests:
- Non-colliding files moved
- Same content within window: keep oldest (trash incoming or replace existing)
- Different content / no hash / outside window: rename incoming
- Unique name generation
- Emptied source trashed; non-empty source kept
- Dry-run: decisions and counters, no mutating call
- Store failures isolated per file
- Idempotence of a completed merge
- Excluded roots skipped; dry-run counters match a live run
"""

import pytest
from agents.src.agents.drive_cleaner.budget import ExecutionBudget
from agents.src.agents.drive_cleaner.folder_merger import FolderMergeExecutor, merge_duplicate_folders
from agents.src.agents.drive_cleaner.models import FolderNode, KeepStrategy, MergeDecision, MergeResult
from structlog.testing import capture_logs
from tests.helpers.fake_drive_store import at


def _node(store, folder_id) -> FolderNode:
    record = store.folders[folder_id]
    return FolderNode(
        id=record.id,
        name=record.name,
        parent_id=store.folder_parent[folder_id],
        created_at=record.created_at,
        modified_at=record.modified_at,
        depth=1,
        path=f"Root/{record.name}",
    )


@pytest.fixture
def pair(store):
    """Two sibling "Acme" folders: target (t) and source (s)."""
    store.add_folder("root", "Root")
    store.add_folder("t", "Acme", parent_id="root", created=at(0))
    store.add_folder("s", "Acme", parent_id="root", created=at(1))
    return store


def _executor(store, make_config, **overrides):
    return FolderMergeExecutor(store, make_config(**overrides))


# ============================================================================
# File moves and collisions
# ============================================================================


class TestMergeFiles:
    """Test per-file decisions."""

    def test_no_collision_moves(self, pair, make_config):
        pair.add_file("f1", "s", name="report.pdf", content_hash="H1")

        result = _executor(pair, make_config).merge([_node(pair, "s")], _node(pair, "t"))

        assert result.files_moved == 1
        assert pair.file_folder["f1"] == "t"
        assert pair.visible_names("t") == ["report.pdf"]

    def test_same_content_existing_older_trashes_incoming(self, pair, make_config):
        """Target invoice.pdf (t=0) vs source invoice.pdf (t=2h), same hash."""
        pair.add_file("old", "t", name="invoice.pdf", created=at(0), content_hash="H")
        pair.add_file("new", "s", name="invoice.pdf", created=at(2), content_hash="H")

        result = _executor(pair, make_config).merge([_node(pair, "s")], _node(pair, "t"))

        assert result.duplicates_handled == 1
        assert result.files_moved == 0
        assert pair.is_trashed("new")
        assert pair.file_folder["new"] == "s"
        assert not pair.is_trashed("old")
        assert ("move_file", "new", "t") not in pair.calls

    def test_same_content_incoming_older_replaces_existing(self, pair, make_config):
        pair.add_file("newer", "t", name="invoice.pdf", created=at(5), content_hash="H")
        pair.add_file("older", "s", name="invoice.pdf", created=at(1), content_hash="H")

        result = _executor(pair, make_config).merge([_node(pair, "s")], _node(pair, "t"))

        assert result.duplicates_handled == 1
        assert pair.is_trashed("newer")
        assert pair.file_folder["older"] == "t"
        assert pair.files["older"].name == "invoice.pdf"

    def test_different_content_renames(self, pair, make_config):
        pair.add_file("a", "t", name="invoice.pdf", content_hash="H1")
        pair.add_file("b", "s", name="invoice.pdf", content_hash="H2")

        result = _executor(pair, make_config).merge([_node(pair, "s")], _node(pair, "t"))

        assert result.files_renamed == 1
        assert result.duplicates_handled == 0
        assert pair.files["b"].name == "invoice (2).pdf"
        assert pair.file_folder["b"] == "t"
        assert not any(c[0] == "set_trashed" and c[1] in {"a", "b"} for c in pair.calls)

    def test_missing_hash_renames(self, pair, make_config):
        pair.add_file("a", "t", name="Notes", content_hash=None)
        pair.add_file("b", "s", name="Notes", content_hash=None)

        result = _executor(pair, make_config).merge([_node(pair, "s")], _node(pair, "t"))

        assert result.files_renamed == 1
        assert pair.files["b"].name == "Notes (2)"

    def test_hash_failure_treated_as_absent(self, pair, make_config):
        pair.add_file("a", "t", name="x.bin", content_hash="H")
        pair.add_file("b", "s", name="x.bin", content_hash="H")
        pair.hash_failures.add("b")

        result = _executor(pair, make_config).merge([_node(pair, "s")], _node(pair, "t"))

        assert result.files_renamed == 1
        assert result.errors == 0
        assert pair.files["b"].name == "x (2).bin"

    def test_same_content_outside_window_renames(self, pair, make_config):
        pair.add_file("a", "t", name="photo.jpg", created=at(0), content_hash="H")
        pair.add_file("b", "s", name="photo.jpg", created=at(72), content_hash="H")

        result = _executor(pair, make_config).merge([_node(pair, "s")], _node(pair, "t"))

        assert result.files_renamed == 1
        assert not pair.is_trashed("b")

    def test_trashed_source_files_ignored(self, pair, make_config):
        pair.add_file("gone", "s", name="gone.txt", trashed=True)

        result = _executor(pair, make_config).merge([_node(pair, "s")], _node(pair, "t"))

        assert result.files_moved == 0
        assert pair.file_folder["gone"] == "s"

    def test_hash_from_listing_skips_lookup(self, make_config):
        from tests.helpers.fake_drive_store import FakeDriveStore

        store = FakeDriveStore(hashes_in_listing=True)
        store.add_folder("root")
        store.add_folder("t", "Acme", parent_id="root")
        store.add_folder("s", "Acme", parent_id="root")
        store.add_file("a", "t", name="x.txt", content_hash="H")
        store.add_file("b", "s", name="x.txt", content_hash="H", created=at(1))

        FolderMergeExecutor(store, make_config()).merge([_node(store, "s")], _node(store, "t"))

        assert store.hash_lookups == []
        assert store.is_trashed("b")


# ============================================================================
# Unique names
# ============================================================================


class TestUniqueName:
    """Test generate_unique_name."""

    def test_skips_taken_suffixes(self, pair, make_config):
        for i, name in enumerate(["invoice.pdf", "invoice (2).pdf", "invoice (3).pdf", "invoice (4).pdf"]):
            pair.add_file(f"t{i}", "t", name=name, content_hash=f"T{i}")
        pair.add_file("in", "s", name="invoice.pdf", content_hash="NEW")

        result = _executor(pair, make_config).merge([_node(pair, "s")], _node(pair, "t"))

        assert result.files_renamed == 1
        assert pair.files["in"].name == "invoice (5).pdf"

    def test_split_at_last_dot(self, pair, make_config):
        executor = _executor(pair, make_config)
        assert executor.generate_unique_name("backup.tar.gz", "t") == "backup.tar (2).gz"

    def test_leading_dot_name_has_no_extension(self, pair, make_config):
        executor = _executor(pair, make_config)
        assert executor.generate_unique_name(".env", "t") == ".env (2)"

    def test_trashed_names_are_free(self, pair, make_config):
        pair.add_file("old", "t", name="a (2).txt", trashed=True)
        assert _executor(pair, make_config).generate_unique_name("a.txt", "t") == "a (2).txt"

    def test_two_renames_get_distinct_names(self, store, make_config):
        """Two sources colliding on the same name end up as (2) and (3)."""
        store.add_folder("root")
        for fid in ["t", "s1", "s2"]:
            store.add_folder(fid, "Acme", parent_id="root")
        store.add_file("a", "t", name="doc.txt", content_hash="H1")
        store.add_file("b", "s1", name="doc.txt", content_hash="H2")
        store.add_file("c", "s2", name="doc.txt", content_hash="H3")

        FolderMergeExecutor(store, make_config()).merge([_node(store, "s1"), _node(store, "s2")], _node(store, "t"))

        assert store.visible_names("t") == ["doc (2).txt", "doc (3).txt", "doc.txt"]


# ============================================================================
# Source folder removal
# ============================================================================


class TestSourceRemoval:
    """Test empty source trashing."""

    def test_emptied_source_trashed(self, pair, make_config):
        pair.add_file("f1", "s", name="a.txt")
        pair.add_file("f2", "s", name="b.txt")

        result = _executor(pair, make_config).merge([_node(pair, "s")], _node(pair, "t"))

        assert result.empty_folders_deleted == 1
        assert result.folders_merged == 1
        assert pair.is_trashed("s")

    def test_source_with_empty_subfolder_kept(self, pair, make_config):
        pair.add_folder("sub", "Sub", parent_id="s")
        pair.add_file("f1", "s", name="a.txt")

        result = _executor(pair, make_config, merge_folders_recursive=False).merge(
            [_node(pair, "s")], _node(pair, "t")
        )

        assert result.empty_folders_deleted == 0
        assert not pair.is_trashed("s")

    def test_source_with_failed_file_kept(self, pair, make_config):
        pair.add_file("f1", "s", name="a.txt")
        pair.mutation_failures.add("f1")

        result = _executor(pair, make_config).merge([_node(pair, "s")], _node(pair, "t"))

        assert result.errors == 1
        assert result.empty_folders_deleted == 0
        assert not pair.is_trashed("s")

    def test_duplicate_trashed_in_source_counts_as_empty(self, pair, make_config):
        pair.add_file("a", "t", name="x.txt", created=at(0), content_hash="H")
        pair.add_file("b", "s", name="x.txt", created=at(1), content_hash="H")

        result = _executor(pair, make_config).merge([_node(pair, "s")], _node(pair, "t"))

        assert result.empty_folders_deleted == 1
        assert pair.is_trashed("s")


# ============================================================================
# Dry-run
# ============================================================================


class TestDryRun:
    """Test dry-run mode."""

    def test_no_mutations_but_counters(self, pair, make_config):
        pair.add_file("m", "s", name="move.txt")
        pair.add_file("a", "t", name="dup.txt", created=at(0), content_hash="H")
        pair.add_file("b", "s", name="dup.txt", created=at(1), content_hash="H")
        pair.add_file("c", "t", name="diff.txt", content_hash="X")
        pair.add_file("d", "s", name="diff.txt", content_hash="Y")

        result = _executor(pair, make_config, dry_run=True).merge([_node(pair, "s")], _node(pair, "t"))

        assert pair.mutations() == []
        assert result.files_moved == 1
        assert result.duplicates_handled == 1
        assert result.files_renamed == 1
        assert result.empty_folders_deleted == 1
        assert pair.visible_names("s") == ["diff.txt", "dup.txt", "move.txt"]

    def test_dry_run_logs_would_actions(self, pair, make_config):
        pair.add_file("m", "s", name="move.txt")

        with capture_logs() as logs:
            _executor(pair, make_config, dry_run=True).merge([_node(pair, "s")], _node(pair, "t"))

        actions = {e.get("action") for e in logs}
        assert {"would_move", "would_trash"} <= actions

    def test_counters_match_live_run(self, make_config, budget):
        """Two sources each hold x.pdf with different content; the target has none."""
        from tests.helpers.fake_drive_store import FakeDriveStore

        def build():
            store = FakeDriveStore()
            root = store.add_folder("root")
            store.add_folder("a1", "Acme", parent_id="root", created=at(0))
            store.add_folder("a2", "Acme", parent_id="root", created=at(1))
            store.add_folder("a3", "Acme", parent_id="root", created=at(2))
            store.add_file("x2", "a2", name="x.pdf", created=at(1), content_hash="H1")
            store.add_file("x3", "a3", name="x.pdf", created=at(2), content_hash="H2")
            return store, root

        dry_store, dry_root = build()
        live_store, live_root = build()

        dry = merge_duplicate_folders(dry_store, dry_root, make_config(dry_run=True), budget)
        live = merge_duplicate_folders(live_store, live_root, make_config(dry_run=False), budget)

        assert dry_store.mutations() == []
        assert (live.files_moved, live.files_renamed) == (1, 1)
        assert dry.model_dump() == live.model_dump()
        assert live_store.visible_names("a1") == ["x (2).pdf", "x.pdf"]

    def test_planned_name_taken_by_later_rename(self, store, make_config):
        """A name planned for a moved file is not handed out again."""
        store.add_folder("root")
        for fid in ["t", "s1", "s2"]:
            store.add_folder(fid, "Acme", parent_id="root")
        store.add_file("a", "t", name="doc.txt", content_hash="H1")
        store.add_file("b", "s1", name="doc (2).txt", content_hash="H2")
        store.add_file("c", "s2", name="doc.txt", content_hash="H3")

        with capture_logs() as logs:
            result = FolderMergeExecutor(store, make_config(dry_run=True)).merge(
                [_node(store, "s1"), _node(store, "s2")], _node(store, "t")
            )

        assert result.files_moved == 1
        assert result.files_renamed == 1
        renamed = [e for e in logs if e["event"] == "merge_file_renamed"]
        assert renamed[0]["new_name"] == "doc (3).txt"


# ============================================================================
# Errors
# ============================================================================


class TestErrors:
    """Test failure isolation."""

    def test_failed_move_does_not_stop_siblings(self, pair, make_config):
        pair.add_file("f1", "s", name="a.txt")
        pair.add_file("f2", "s", name="b.txt")
        pair.mutation_failures.add("f1")
        executor = _executor(pair, make_config)
        result = MergeResult()

        decisions = [executor.merge_file(pair.files[f], _node(pair, "t"), result) for f in ["f1", "f2"]]

        assert decisions == [MergeDecision.ERROR, MergeDecision.MOVE]
        assert result.errors == 1
        assert result.files_moved == 1

    def test_unreachable_source_counted(self, pair, make_config):
        pair.unreachable.add("s")

        result = _executor(pair, make_config).merge([_node(pair, "s")], _node(pair, "t"))

        # listing failure + emptiness check failure
        assert result.errors == 2
        assert result.files_moved == 0

    def test_replace_moves_incoming_before_trashing_existing(self, pair, make_config):
        pair.add_file("newer", "t", name="invoice.pdf", created=at(5), content_hash="H")
        pair.add_file("older", "s", name="invoice.pdf", created=at(1), content_hash="H")

        _executor(pair, make_config).merge([_node(pair, "s")], _node(pair, "t"))

        calls = pair.mutations()
        assert calls.index(("move_file", "older", "t")) < calls.index(("set_trashed", "newer", True))

    def test_failed_replace_keeps_existing_visible(self, pair, make_config):
        pair.add_file("newer", "t", name="invoice.pdf", created=at(5), content_hash="H")
        pair.add_file("older", "s", name="invoice.pdf", created=at(1), content_hash="H")
        pair.mutation_failures.add("older")

        result = _executor(pair, make_config).merge([_node(pair, "s")], _node(pair, "t"))

        assert result.errors == 1
        assert result.duplicates_handled == 0
        assert not pair.is_trashed("newer")
        assert pair.visible_names("t") == ["invoice.pdf"]
        assert not pair.is_trashed("s")


# ============================================================================
# merge_duplicate_folders
# ============================================================================


class TestMergeDuplicateFolders:
    """Test the Phase 1 driver."""

    def test_most_files_scenario(self, store, make_config, budget):
        """Folder1 has 2 files, Folder2 has 5: Folder2 survives, Folder1 is emptied and trashed."""
        root = store.add_folder("root", "Root")
        store.add_folder("folder1", "Acme", parent_id="root")
        store.add_folder("folder2", "Acme", parent_id="root")
        store.add_file("x1", "folder1", name="a.txt", content_hash="A")
        store.add_file("x2", "folder1", name="shared.txt", content_hash="S1")
        for i in range(4):
            store.add_file(f"y{i}", "folder2", name=f"y{i}.txt")
        store.add_file("y9", "folder2", name="shared.txt", content_hash="S2")
        config = make_config(merge_keep_folder_strategy=KeepStrategy.MOST_FILES)

        stats = merge_duplicate_folders(store, root, config, budget)

        assert stats.duplicate_groups_found == 1
        assert stats.folders_merged == 1
        assert stats.files_moved == 1
        assert stats.files_renamed == 1
        assert stats.empty_folders_deleted == 1
        assert store.is_trashed("folder1")
        assert "shared (2).txt" in store.visible_names("folder2")

    def test_no_duplicates(self, store, make_config, budget):
        root = store.add_folder("root")
        store.add_folder("a", "A", parent_id="root")
        store.add_folder("b", "B", parent_id="root")

        stats = merge_duplicate_folders(store, root, make_config(), budget)

        assert stats.folders_scanned == 2
        assert stats.duplicate_groups_found == 0
        assert store.mutations() == []

    def test_case_insensitive_names_merged(self, store, make_config, budget):
        root = store.add_folder("root")
        store.add_folder("a", "Invoices", parent_id="root", created=at(0))
        store.add_folder("b", "INVOICES", parent_id="root", created=at(1))
        store.add_file("f", "b", name="x.pdf")

        stats = merge_duplicate_folders(store, root, make_config(), budget)

        assert stats.folders_merged == 1
        assert store.file_folder["f"] == "a"

    def test_nested_duplicates_when_recursive(self, store, make_config, budget):
        root = store.add_folder("root")
        store.add_folder("p", "Parent", parent_id="root")
        store.add_folder("c1", "Child", parent_id="p", created=at(0))
        store.add_folder("c2", "Child", parent_id="p", created=at(1))

        assert merge_duplicate_folders(store, root, make_config(), budget).duplicate_groups_found == 1

        flat_stats = merge_duplicate_folders(
            store, root, make_config(merge_folders_recursive=False), budget
        )
        assert flat_stats.folders_scanned == 1
        assert flat_stats.duplicate_groups_found == 0

    def test_excluded_folders_not_merged(self, store, make_config, budget):
        root = store.add_folder("root")
        store.add_folder("a", "Acme", parent_id="root", created=at(0))
        store.add_folder("b", "Acme", parent_id="root", created=at(1))

        stats = merge_duplicate_folders(store, root, make_config(excluded_folder_ids=["b"]), budget)

        assert stats.duplicate_groups_found == 0
        assert store.mutations() == []

    def test_excluded_root_skipped(self, store, make_config, budget):
        root = store.add_folder("root")
        store.add_folder("a", "Acme", parent_id="root", created=at(0))
        store.add_folder("b", "Acme", parent_id="root", created=at(1))
        store.add_file("f", "b", name="x.txt")

        with capture_logs() as logs:
            stats = merge_duplicate_folders(store, root, make_config(excluded_folder_ids=["root"]), budget)

        assert stats.folders_scanned == 0
        assert store.mutations() == []
        assert any(e["event"] == "folder_excluded" and e["folder_id"] == "root" for e in logs)

    def test_root_below_excluded_ancestor_skipped(self, store, make_config, budget):
        store.add_folder("shared", "Shared")
        root = store.add_folder("root", "Root", parent_id="shared")
        store.add_folder("a", "Acme", parent_id="root", created=at(0))
        store.add_folder("b", "Acme", parent_id="root", created=at(1))
        store.add_file("f", "b", name="x.txt")

        stats = merge_duplicate_folders(store, root, make_config(excluded_folder_ids=["shared"]), budget)

        assert stats.folders_scanned == 0
        assert stats.folders_merged == 0
        assert store.mutations() == []
        assert store.file_folder["f"] == "b"

    def test_budget_checked_between_groups(self, store, make_config, fake_clock):
        root = store.add_folder("root")
        for name in ["A", "B"]:
            store.add_folder(f"{name}1", name, parent_id="root", created=at(0))
            store.add_folder(f"{name}2", name, parent_id="root", created=at(1))
        budget = ExecutionBudget(10, monotonic=fake_clock)
        fake_clock.advance(11)

        stats = merge_duplicate_folders(store, root, make_config(), budget)

        assert stats.duplicate_groups_found == 2
        assert stats.folders_merged == 0
        assert stats.budget_exhausted is True
        assert store.mutations() == []

    def test_idempotent_second_run(self, store, make_config, budget):
        root = store.add_folder("root")
        store.add_folder("a", "Acme", parent_id="root", created=at(0))
        store.add_folder("b", "Acme", parent_id="root", created=at(1))
        store.add_file("f", "b", name="x.txt")

        merge_duplicate_folders(store, root, make_config(), budget)
        calls_after_first = len(store.mutations())
        stats = merge_duplicate_folders(store, root, make_config(), budget)

        assert stats.duplicate_groups_found == 0
        assert len(store.mutations()) == calls_after_first

    def test_scan_errors_counted(self, store, make_config, budget):
        root = store.add_folder("root")
        store.add_folder("a", "A", parent_id="root")
        store.unreachable.add("a")

        stats = merge_duplicate_folders(store, root, make_config(), budget)

        assert stats.errors == 1
