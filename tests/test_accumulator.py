"""Tests for the bounded text accumulator."""

from promptpack.indexer.accumulator import (
    CONTENT_TRUNCATED,
    INDENT,
    AppendStatus,
    BoundedTextAccumulator,
)


class TestPerEntryCap:
    def test_lines_within_budget(self):
        acc = BoundedTextAccumulator(total_cap=10_000, per_entry_cap=100)
        acc.append_entry_header(0, "├─ ", "a.kt")
        status = acc.append_entry_body(1, ["one", "two"])
        assert status is AppendStatus.OK
        assert acc.getvalue() == f"├─ a.kt\n{INDENT}one\n{INDENT}two\n"

    def test_cap_cuts_on_line_boundary_with_single_marker(self):
        acc = BoundedTextAccumulator(total_cap=10_000, per_entry_cap=10)
        acc.append_entry_header(0, "├─ ", "a.kt")
        status = acc.append_entry_body(1, ["abcd", "efgh", "ijkl"])
        assert status is AppendStatus.ENTRY_FULL
        # 5 + 5 chars fit exactly, the third line does not
        assert acc.getvalue().splitlines() == [
            "├─ a.kt",
            f"{INDENT}abcd",
            f"{INDENT}efgh",
            f"{INDENT}{CONTENT_TRUNCATED}",
        ]
        assert acc.append_line(1, "x") is AppendStatus.ENTRY_FULL
        assert acc.getvalue().count(CONTENT_TRUNCATED) == 1
        assert acc.truncated_by_file_cap

    def test_header_resets_entry_budget(self):
        acc = BoundedTextAccumulator(total_cap=10_000, per_entry_cap=6)
        acc.append_entry_header(0, "├─ ", "a")
        acc.append_entry_body(1, ["12345", "overflow"])
        acc.append_entry_header(0, "├─ ", "b")
        assert acc.append_line(1, "12345") is AppendStatus.OK
        assert acc.entries_truncated == 1


class TestTotalCap:
    def test_total_cap_blocks_further_writes(self):
        acc = BoundedTextAccumulator(total_cap=30, per_entry_cap=1_000)
        acc.append_entry_header(0, "", "head")  # 5 bytes
        status = acc.append_entry_body(0, ["x" * 10, "y" * 10, "z" * 10])
        assert status is AppendStatus.TOTAL_FULL
        assert acc.truncated_by_total_cap
        assert acc.getvalue() == "head\n" + "x" * 10 + "\n" + "y" * 10 + "\n"
        assert not acc.append_entry_header(0, "", "next")
        assert acc.total_bytes <= 30

    def test_total_cap_counts_utf8_bytes(self):
        acc = BoundedTextAccumulator(total_cap=7, per_entry_cap=1_000)
        # "é" is two bytes: 3 x 2 + newline = 7 bytes
        assert acc.append_line(0, "ééé") is AppendStatus.OK
        assert acc.append_line(0, "") is AppendStatus.TOTAL_FULL

    def test_footer_may_exceed_cap(self):
        acc = BoundedTextAccumulator(total_cap=5, per_entry_cap=100)
        acc.append_line(0, "abcd")
        acc.append_line(0, "more")
        acc.append_footer("[truncated: output limit of 5 bytes reached]")
        text = acc.getvalue()
        assert text.startswith("abcd\n")
        assert text.endswith("[truncated: output limit of 5 bytes reached]\n")
