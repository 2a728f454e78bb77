"""Tests for restack.stack.units module."""

from restack.diff import ChangeType, CommitRef, StackCommit, parse_unified_diff
from restack.stack import (
    Granularity,
    MutationType,
    build_unit_inventory,
    explode_hunk,
    group_by_file,
    hunk_units,
    line_units,
    units_for_commits,
    unreplayable_changes,
)


class TestHunkUnits:
    """Tests for hunk_units function."""

    def test_one_unit_per_hunk(self, sample_diff):
        """Test identity projection of hunks."""
        units = hunk_units("abc123", parse_unified_diff(sample_diff))

        assert [u.id for u in units] == [
            "abc123-file-0-file-0-hunk-0",
            "abc123-file-0-file-0-hunk-1",
            "abc123-file-1-file-1-hunk-0",
        ]
        assert [u.order for u in units] == [0, 1, 2]

    def test_mutations_skip_context(self, sample_diff):
        """Test that only added and removed lines become mutations."""
        unit = hunk_units("abc123", parse_unified_diff(sample_diff))[0]

        assert [m.type for m in unit.mutations] == [
            MutationType.DELETE,
            MutationType.ADD,
            MutationType.ADD,
            MutationType.ADD,
        ]
        assert unit.mutations[0].content == '    print("old")'
        assert not unit.is_line

    def test_binary_files_yield_no_units(self):
        """Test that binary files are not selectable."""
        diff = "diff --git a/a.png b/a.png\nBinary files a/a.png and b/a.png differ\n"
        assert hunk_units("abc123", parse_unified_diff(diff)) == []


class TestExplodeHunk:
    """Tests for explode_hunk function."""

    def test_line_ids_count_header_as_zero(self):
        """Test that body line indexes start at 1, after the header."""
        files = parse_unified_diff("diff --git a/x b/x\n@@ -1,2 +1,3 @@\n a\n-b\n+c\n+d\n")

        units = explode_hunk("abc123", files[0], files[0].hunks[0])

        assert [u.id for u in units] == [
            "abc123-file-0-file-0-hunk-0-line-2",
            "abc123-file-0-file-0-hunk-0-line-3",
            "abc123-file-0-file-0-hunk-0-line-4",
        ]
        assert [u.line_index for u in units] == [2, 3, 4]
        assert all(u.is_line for u in units)

    def test_idempotent(self, sample_diff):
        """Test that exploding twice gives equal results."""
        files = parse_unified_diff(sample_diff)

        first = explode_hunk("abc123", files[0], files[0].hunks[0])
        second = explode_hunk("abc123", files[0], files[0].hunks[0])

        assert first == second

    def test_no_newline_marker_is_not_selectable(self):
        """Test that the no-newline marker never becomes a unit."""
        diff = "diff --git a/f b/f\n@@ -1 +1 @@\n-a\n\\ No newline at end of file\n+b\n"
        files = parse_unified_diff(diff)

        units = explode_hunk("abc123", files[0], files[0].hunks[0])

        assert [u.mutations[0].content for u in units] == ["a", "b"]
        assert [u.line_index for u in units] == [1, 3]

    def test_carries_change_type(self):
        """Test that line units keep the file's change type."""
        diff = "diff --git a/n b/n\nnew file mode 100644\n@@ -0,0 +1 @@\n+x\n"
        files = parse_unified_diff(diff)

        units = explode_hunk("abc123", files[0], files[0].hunks[0])

        assert units[0].change_type == ChangeType.ADDED


class TestUnitsForCommits:
    """Tests for units_for_commits and line_units."""

    def _stack(self, sample_diff):
        first = StackCommit(
            commit=CommitRef(hash="aaa", author="A", date="2026-01-01", message="one"),
            changes=parse_unified_diff("diff --git a/x b/x\n@@ -1 +1 @@\n-a\n+b\n"),
        )
        second = StackCommit(
            commit=CommitRef(hash="bbb", author="A", date="2026-01-02", message="two"),
            changes=parse_unified_diff(sample_diff),
        )
        return [first, second]

    def test_chronological_order(self, sample_diff):
        """Test that units follow commit order and are numbered globally."""
        units = units_for_commits(self._stack(sample_diff), Granularity.HUNK)

        assert [u.commit_hash for u in units] == ["aaa", "bbb", "bbb", "bbb"]
        assert [u.order for u in units] == list(range(4))

    def test_line_granularity(self, sample_diff):
        """Test that line granularity explodes every hunk."""
        units = units_for_commits(self._stack(sample_diff), Granularity.LINE)

        # 2 lines in x, 4 + 1 in src/main.py, 3 in tests/test_main.py
        assert len(units) == 10
        assert units[0].id == "aaa-file-0-file-0-hunk-0-line-1"
        assert [u.order for u in units] == list(range(10))

    def test_line_units_order_is_per_commit(self, sample_diff):
        """Test that line_units numbers units within one commit."""
        units = line_units("bbb", parse_unified_diff(sample_diff))

        assert [u.order for u in units] == list(range(8))


class TestGroupByFile:
    """Tests for group_by_file and build_unit_inventory."""

    def test_groups_preserve_encounter_order(self, sample_diff):
        """Test grouping by file name."""
        units = hunk_units("abc123", parse_unified_diff(sample_diff))

        grouped = group_by_file(units)

        assert list(grouped) == ["src/main.py", "tests/test_main.py"]
        assert [u.hunk_id for u in grouped["src/main.py"]] == ["file-0-hunk-0", "file-0-hunk-1"]

    def test_inventory_maps_ids(self, sample_diff):
        """Test building the id lookup."""
        units = hunk_units("abc123", parse_unified_diff(sample_diff))

        inventory = build_unit_inventory(units)

        assert set(inventory) == {u.id for u in units}
        assert inventory[units[1].id] is units[1]


class TestUnreplayableChanges:
    """Tests for unreplayable_changes function."""

    def test_lists_changes_without_line_units(self):
        """Test binary files, pure renames, mode changes and empty files."""
        diff = (
            "diff --git a/logo.bin b/logo.bin\n"
            "new file mode 100644\n"
            "Binary files /dev/null and b/logo.bin differ\n"
            "diff --git a/old.txt b/new.txt\n"
            "similarity index 100%\n"
            "rename from old.txt\n"
            "rename to new.txt\n"
            "diff --git a/run.sh b/run.sh\n"
            "old mode 100644\n"
            "new mode 100755\n"
            "diff --git a/empty b/empty\n"
            "new file mode 100644\n"
            "index 0000000..e69de29\n"
            "diff --git a/app.py b/app.py\n"
            "@@ -1 +1 @@\n"
            "-a\n"
            "+b\n"
        )
        stack = [
            StackCommit(
                commit=CommitRef(hash="abcdef123", author="A", date="2026-01-01", message="m"),
                changes=parse_unified_diff(diff),
            )
        ]

        assert unreplayable_changes(stack) == [
            "abcdef1 logo.bin (binary)",
            "abcdef1 new.txt (renamed from old.txt without content changes)",
            "abcdef1 run.sh (mode change)",
            "abcdef1 empty (empty new file)",
        ]

    def test_rename_with_edits_notes_old_path(self):
        """Test that a rename carrying hunks is still reported."""
        diff = (
            "diff --git a/old.py b/new.py\n"
            "similarity index 90%\n"
            "rename from old.py\n"
            "rename to new.py\n"
            "@@ -1 +1 @@\n"
            "-x = 1\n"
            "+x = 2\n"
        )
        stack = [
            StackCommit(
                commit=CommitRef(hash="1234567", author="A", date="2026-01-01", message="m"),
                changes=parse_unified_diff(diff),
            )
        ]

        assert unreplayable_changes(stack) == [
            "1234567 new.py (renamed from old.py; the old path is not removed)"
        ]

    def test_plain_edits_are_not_listed(self, sample_diff):
        """Test that ordinary text changes produce nothing."""
        stack = [
            StackCommit(
                commit=CommitRef(hash="aaa", author="A", date="2026-01-01", message="m"),
                changes=parse_unified_diff(sample_diff),
            )
        ]

        assert unreplayable_changes(stack) == []
