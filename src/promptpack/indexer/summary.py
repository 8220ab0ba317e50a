"""Plain-text summary of an index run."""

from promptpack.models import IndexStats


def summarize(display_name: str, stats: IndexStats) -> str:
    lines = [
        f"{display_name}: {stats.entries_included} of {stats.entries_scanned} entries indexed"
    ]
    if stats.entries_ignored:
        lines.append(
            f"Ignored: {stats.entries_ignored} entries (build output, VCS metadata, hidden files)"
        )
    if stats.entries_truncated:
        lines.append(f"Truncated: {stats.entries_truncated} entries cut at the per-file limit")
    if stats.truncated_by_total_cap:
        lines.append("Output limit reached; later entries omitted")
    if stats.entry_cap_reached:
        lines.append("Entry limit reached; later entries omitted")
    if stats.languages:
        ranked = sorted(stats.languages.items(), key=lambda item: (-item[1], item[0]))
        lines.append("Languages: " + ", ".join(f"{lang} ({count})" for lang, count in ranked))
    return "\n".join(lines)
