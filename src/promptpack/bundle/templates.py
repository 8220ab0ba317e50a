"""Static text used in context bundles."""

NO_SUMMARY = "No summary available yet."

INSTRUCTIONS = """\
You are given the structure and selected source excerpts of a project.
1. Read the project tree first and build a picture of the layout.
2. Excerpts may be cut short; a "[content truncated]" line marks the cut.
3. Entries marked "[binary content skipped]" were not inlined.
4. Ask for a specific file before relying on code you cannot see.
5. Answer with concrete file paths and minimal, focused changes."""
