"""Tests for the diff model builder."""

import hashlib
import io

import pytest

from extdiff.adapters import DifftAdapter, SpecialDiffAdapter
from extdiff.builder import DiffBuilder, parse_patch
from extdiff.config import DiffLimits
from extdiff.encoding import EncodingNormalizer
from extdiff.errors import DiffDecodeError
from extdiff.models import DiffFileType, DiffLineType


def special_file(name, *hunks):
    return {"headers": [], "old_path": name, "new_path": name, "hunks": list(hunks)}


def special_hunk(raw, old_start, old_offset, new_start, new_offset, *lines):
    return {
        "headers": [],
        "header": {
            "raw": raw,
            "old_start": old_start,
            "old_offset": old_offset,
            "new_start": new_start,
            "new_offset": new_offset,
        },
        "lines": [{"type": marker, "text": text} for marker, text in lines],
    }


def difft_file(path, *chunks):
    return {"path": path, "language": "Python", "status": "changed", "chunks": list(chunks)}


def difft_line(lhs=(), rhs=()):
    return {
        "lhs": {"line_number": 1, "changes": [{"start": 0, "end": len(c), "content": c} for c in lhs]},
        "rhs": {"line_number": 1, "changes": [{"start": 0, "end": len(c), "content": c} for c in rhs]},
    }


def assert_totals_consistent(diff):
    assert diff.total_addition == sum(f.addition for f in diff.files)
    assert diff.total_deletion == sum(f.deletion for f in diff.files)
    for file in diff.files:
        lines = list(file.iter_lines())
        assert file.addition == sum(1 for line in lines if line.type.is_addition)
        assert file.deletion == sum(1 for line in lines if line.type.is_deletion)


def assert_section_headers(diff):
    for file in diff.files:
        for section in file.sections:
            assert section.lines[0].type is DiffLineType.SECTION
            assert all(line.type is not DiffLineType.SECTION for line in section.lines[1:])
            assert section.file is file
            assert section.file_name == file.name


class TestSpecialDiffParsing:
    """Move-aware (variant B) streams."""

    def test_single_file_scenario(self, make_stream):
        """Context plus addition in one hunk."""
        stream = make_stream(
            special_file(
                "a.txt",
                special_hunk("@@ -1,1 +1,2 @@", 1, 1, 1, 2, (" ", "keep"), ("+", "added")),
            )
        )

        diff = parse_patch(stream, SpecialDiffAdapter())

        assert diff.num_files == 1
        file = diff.files[0]
        assert file.name == "a.txt"
        assert file.index == 1
        assert file.type is DiffFileType.CHANGE
        assert file.addition == 1
        assert file.deletion == 0

        lines = file.sections[0].lines
        assert len(lines) == 3
        header, context, added = lines
        assert header.type is DiffLineType.SECTION
        assert header.content == "@@ -1,1 +1,2 @@"
        assert header.section_info.left_idx == 1
        assert header.section_info.right_idx == 1
        assert context.type is DiffLineType.PLAIN
        assert context.content == " keep"
        assert (context.left_idx, context.right_idx, context.match) == (1, 1, 1)
        assert added.type is DiffLineType.ADD
        assert added.content == "+added"
        assert added.right_idx == 2
        assert added.left_idx == 0
        assert added.match == -1

    def test_moved_lines_count_as_changes(self, make_stream):
        """Moved additions and deletions are tagged distinctly but counted."""
        stream = make_stream(
            special_file(
                "mod.py",
                special_hunk(
                    "@@ -3,3 +3,3 @@",
                    3, 3, 3, 3,
                    ("m-", "def moved():"),
                    (" ", "x = 1"),
                    ("-", "y = 2"),
                    ("+", "y = 3"),
                    ("m+", "def moved():"),
                ),
            )
        )

        diff = parse_patch(stream, SpecialDiffAdapter())

        file = diff.files[0]
        assert file.addition == 2
        assert file.deletion == 2
        types = [line.type for line in file.sections[0].lines[1:]]
        assert types == [
            DiffLineType.MOVED_DEL,
            DiffLineType.PLAIN,
            DiffLineType.DEL,
            DiffLineType.ADD,
            DiffLineType.MOVED_ADD,
        ]
        moved_del, context, deleted, added, moved_add = file.sections[0].lines[1:]
        assert moved_del.content == "-def moved():"
        assert moved_del.left_idx == 3
        assert (context.left_idx, context.right_idx, context.match) == (4, 3, 4)
        assert deleted.left_idx == 5
        assert added.right_idx == 4
        assert moved_add.content == "+def moved():"
        assert moved_add.right_idx == 5
        assert_totals_consistent(diff)

    def test_second_hunk_restarts_at_its_header(self, make_stream):
        """Each hunk numbers from its own header and records where the last one stopped."""
        stream = make_stream(
            special_file(
                "b.txt",
                special_hunk("@@ -1,2 +1,2 @@", 1, 2, 1, 2, ("-", "one"), ("+", "uno"), (" ", "two")),
                special_hunk("@@ -10 +10,2 @@", 10, 1, 10, 2, (" ", "ten"), ("+", "eleven")),
            )
        )

        diff = parse_patch(stream, SpecialDiffAdapter())

        first, second = diff.files[0].sections
        first_info = first.lines[0].section_info
        assert (first_info.last_left_idx, first_info.last_right_idx) == (1, 1)

        second_info = second.lines[0].section_info
        assert (second_info.left_idx, second_info.right_idx) == (10, 10)
        assert second_info.left_hunk_size == 1
        assert second_info.right_hunk_size == 2
        assert (second_info.last_left_idx, second_info.last_right_idx) == (3, 3)

        context, added = second.lines[1:]
        assert (context.left_idx, context.right_idx) == (10, 10)
        assert added.right_idx == 11

    def test_counters_never_decrease_within_a_hunk(self, make_stream):
        """Left and right counters are monotonic inside a section."""
        lines = [(" ", "a"), ("-", "b"), ("+", "c"), ("m-", "d"), (" ", "e"), ("m+", "f"), ("+", "g")]
        stream = make_stream(special_file("c.txt", special_hunk("@@ -5,4 +7,5 @@", 5, 4, 7, 5, *lines)))

        diff = parse_patch(stream, SpecialDiffAdapter())

        lefts = [l.left_idx for l in diff.files[0].sections[0].lines[1:] if l.left_idx]
        rights = [l.right_idx for l in diff.files[0].sections[0].lines[1:] if l.right_idx]
        assert lefts == sorted(lefts)
        assert rights == sorted(rights)
        assert lefts[0] == 5
        assert rights[0] == 7

    def test_structured_header_used_when_raw_unparsable(self, make_stream):
        """The record's numeric header fields back up an odd raw header."""
        stream = make_stream(
            special_file("d.txt", special_hunk("@@ binary-ish @@", 4, 1, 6, 1, (" ", "same")))
        )

        diff = parse_patch(stream, SpecialDiffAdapter())

        line = diff.files[0].sections[0].lines[1]
        assert (line.left_idx, line.right_idx) == (4, 6)


class TestDifftParsing:
    """difftastic (variant A) streams."""

    def test_changes_become_lines(self, make_stream):
        """lhs changes are deletions, rhs changes are additions, without numbers."""
        stream = make_stream(
            difft_file(
                "src/app.py",
                [difft_line(lhs=["old_name"], rhs=["new_name", "(x)"]), difft_line(rhs=["extra"])],
                [difft_line(lhs=["gone"])],
            )
        )

        diff = parse_patch(stream, DifftAdapter())

        file = diff.files[0]
        assert file.name == "src/app.py"
        assert file.language == "Python"
        assert file.addition == 3
        assert file.deletion == 2
        assert len(file.sections) == 2

        first = file.sections[0].lines
        assert first[0].type is DiffLineType.SECTION
        assert first[0].content == "@"
        assert first[0].section_info is None
        assert [line.content for line in first[1:]] == ["-old_name", "+new_name", "+(x)", "+extra"]
        assert all(line.left_idx == 0 and line.right_idx == 0 for line in first[1:])
        assert_totals_consistent(diff)
        assert_section_headers(diff)


class TestStreamHandling:
    """Stream-level behavior shared by both adapters."""

    def test_empty_stream(self):
        """An empty stream yields an empty diff and no error."""
        diff = parse_patch(io.BytesIO(b""), SpecialDiffAdapter())

        assert diff.files == []
        assert diff.num_files == 0
        assert diff.total_addition == 0
        assert diff.total_deletion == 0
        assert diff.is_incomplete is False

    def test_blank_lines_are_ignored(self, make_stream):
        """Blank lines between records are not decode errors."""
        payload = make_stream(difft_file("a.py", [difft_line(rhs=["x"])])).getvalue()
        stream = io.BytesIO(b"\n" + payload + b"\n\n")

        diff = parse_patch(stream, DifftAdapter())

        assert diff.num_files == 1

    def test_decode_error_keeps_partial_diff(self, make_stream):
        """A bad line after a valid record raises with the valid file attached."""
        valid = make_stream(
            special_file("a.txt", special_hunk("@@ -1 +1 @@", 1, 1, 1, 1, ("-", "x"), ("+", "y")))
        ).getvalue()
        stream = io.BytesIO(valid + b"{not json\n")

        with pytest.raises(DiffDecodeError) as exc_info:
            parse_patch(stream, SpecialDiffAdapter())

        error = exc_info.value
        assert error.line_number == 2
        assert error.code == "DIFF_DECODE_FAILED"
        assert [f.name for f in error.diff.files] == ["a.txt"]
        assert error.diff.num_files == 1
        assert error.diff.total_addition == 1
        assert error.diff.total_deletion == 1

    def test_malformed_hunk_does_not_leave_partial_file(self, make_stream):
        """A record failing midway is not appended to the diff."""
        stream = make_stream(
            special_file("ok.txt", special_hunk("@@ -1 +1 @@", 1, 1, 1, 1, ("+", "y"))),
            special_file(
                "bad.txt",
                special_hunk("@@ -1 +1 @@", 1, 1, 1, 1, ("+", "fine")),
                special_hunk("nonsense", 0, 0, 0, 0, ("+", "lost")),
            ),
        )

        with pytest.raises(DiffDecodeError) as exc_info:
            parse_patch(stream, SpecialDiffAdapter())

        diff = exc_info.value.diff
        assert [f.name for f in diff.files] == ["ok.txt"]
        assert_totals_consistent(diff)

    def test_unknown_line_marker_is_decode_error(self, make_stream):
        """Markers other than space, +, -, m+ and m- are rejected."""
        stream = make_stream(special_file("a.txt", special_hunk("@@ -1 +1 @@", 1, 1, 1, 1, ("?", "x"))))

        with pytest.raises(DiffDecodeError, match=r"hunks\.0\.lines\.0\.type"):
            parse_patch(stream, SpecialDiffAdapter())


class TestSkipTo:
    """Software-side resume from a file."""

    def test_skip_to_drops_earlier_files(self, make_stream):
        """Only the target file and those after it are kept, in order."""
        names = ["a.txt", "b.txt", "c.txt", "d.txt"]
        stream = make_stream(
            *[special_file(n, special_hunk("@@ -1 +1 @@", 1, 1, 1, 1, ("+", n))) for n in names]
        )

        diff = parse_patch(stream, SpecialDiffAdapter(), skip_to="c.txt")

        assert [f.name for f in diff.files] == ["c.txt", "d.txt"]
        assert [f.index for f in diff.files] == [1, 2]
        assert diff.total_addition == 2
        assert_totals_consistent(diff)

    def test_skip_to_missing_target_yields_nothing(self, make_stream):
        """A hint matching no file discards the whole stream."""
        stream = make_stream(difft_file("a.py", [difft_line(rhs=["x"])]))

        diff = parse_patch(stream, DifftAdapter(), skip_to="zzz.py")

        assert diff.files == []
        assert diff.total_addition == 0


class TestLimits:
    """Truncation limits."""

    def test_max_files_marks_diff_incomplete(self, make_stream):
        """Files past the cap are not parsed and the first one is reported as end."""
        stream = make_stream(
            *[difft_file(f"f{i}.py", [difft_line(rhs=["x"])]) for i in range(5)]
        )
        limits = DiffLimits(max_lines=-1, max_line_characters=-1, max_files=2)

        diff = parse_patch(stream, DifftAdapter(), limits)

        assert [f.name for f in diff.files] == ["f0.py", "f1.py"]
        assert diff.is_incomplete is True
        assert diff.end == "f2.py"
        assert diff.num_files == 2
        assert stream.read() == b""

    def test_max_lines_truncates_file(self, make_stream):
        """Lines beyond the per-file cap are dropped and counts follow the kept lines."""
        stream = make_stream(
            special_file(
                "big.txt",
                special_hunk("@@ -1,3 +1,3 @@", 1, 3, 1, 3, ("-", "a"), ("+", "b"), ("+", "c")),
                special_hunk("@@ -9 +9 @@", 9, 1, 9, 1, ("+", "d")),
            ),
            special_file("small.txt", special_hunk("@@ -1 +1 @@", 1, 1, 1, 1, ("+", "e"))),
        )
        limits = DiffLimits(max_lines=2, max_line_characters=-1, max_files=-1)

        diff = parse_patch(stream, SpecialDiffAdapter(), limits)

        big, small = diff.files
        assert big.is_incomplete is True
        assert big.is_incomplete_line_too_long is False
        assert len(big.sections) == 1
        assert [line.content for line in big.sections[0].lines[1:]] == ["-a", "+b"]
        assert small.is_incomplete is False
        assert small.addition == 1
        assert diff.is_incomplete is True
        assert_totals_consistent(diff)

    def test_max_line_characters(self, make_stream):
        """An overlong line stops the file and flags it."""
        stream = make_stream(difft_file("wide.js", [difft_line(rhs=["ok", "x" * 50, "after"])]))
        limits = DiffLimits(max_lines=-1, max_line_characters=10, max_files=-1)

        diff = parse_patch(stream, DifftAdapter(), limits)

        file = diff.files[0]
        assert file.is_incomplete is True
        assert file.is_incomplete_line_too_long is True
        assert [line.content for line in file.sections[0].lines[1:]] == ["+ok"]
        assert file.addition == 1
        assert_totals_consistent(diff)

    def test_unlimited_keeps_everything(self, make_stream):
        """-1 disables every limit."""
        stream = make_stream(
            *[difft_file(f"f{i}.py", [difft_line(rhs=["x" * 200] * 20)]) for i in range(3)]
        )

        diff = parse_patch(stream, DifftAdapter(), DiffLimits.unlimited())

        assert diff.num_files == 3
        assert diff.total_addition == 60
        assert diff.is_incomplete is False


class TestDiffBuilder:
    """Direct builder usage."""

    def test_finish_runs_normalizer(self):
        """finish() seals num_files and applies the normalizer."""
        adapter = SpecialDiffAdapter()
        builder = DiffBuilder(adapter)
        record = adapter.from_dict(
            special_file("x.txt", special_hunk("@@ -1 +1 @@", 1, 1, 1, 1, ("+", "caf\udce9 cr\udce8me br\udcfbl\udce9e")))
        )
        builder.add_record(record)

        diff = builder.finish(EncodingNormalizer(fallback_encoding="latin-1"))

        assert diff.num_files == 1
        assert "\udce9" not in diff.files[0].sections[0].lines[1].content

    def test_name_hash(self, make_stream):
        """Files carry the SHA-1 of their name."""
        diff = parse_patch(make_stream(difft_file("a.py")), DifftAdapter())

        assert diff.files[0].name_hash == hashlib.sha1(b"a.py").hexdigest()
        assert diff.files[0].sections == []
