import sys
from typing import Iterable, List, Optional, TextIO

from stagestat.config import StatusConfig
from stagestat.store import LineChange, StatRecord, StatStore

HEADER_INDENT = "      "

# "No staged change" and "no unstaged change" read differently to a user.
INDEX_PLACEHOLDER = "unchanged"
WORKTREE_PLACEHOLDER = "nothing"


def format_change(change: LineChange, placeholder: str) -> str:
    if change.is_empty():
        return placeholder
    return f"+{change.added}/-{change.deleted}"


def sort_records(records: Iterable[StatRecord]) -> List[StatRecord]:
    """Order records by the bytes of their path, like strcmp on UTF-8."""
    return sorted(records, key=lambda r: r.path.encode('utf-8', 'surrogateescape'))


def render_report(store: StatStore, config: Optional[StatusConfig] = None) -> str:
    """
    Render the status table.

    An empty store renders as a single blank line. Otherwise there is a
    header, one numbered row per path, and a trailing blank line.
    """
    if config is None:
        config = StatusConfig()
    if len(store) < 1:
        return "\n"

    width = config.column_width
    header = f"{'staged':>{width}} {'unstaged':>{width}} path"
    lines = [HEADER_INDENT + config.paint(header, 'header')]

    for i, record in enumerate(sort_records(store.all_records()), start=1):
        index_changes = format_change(record.index_change, INDEX_PLACEHOLDER)
        worktree_changes = format_change(record.worktree_change, WORKTREE_PLACEHOLDER)
        lines.append(f" {i:2d}: {index_changes:>{width}} {worktree_changes:>{width}} {record.path}")

    return '\n'.join(lines) + '\n\n'


def print_report(store: StatStore, config: Optional[StatusConfig] = None, stream: Optional[TextIO] = None) -> None:
    stream = stream or sys.stdout
    text = render_report(store, config)
    buffer = getattr(stream, 'buffer', None)
    if buffer is None:
        stream.write(text)
    else:
        # Paths that are not valid UTF-8 go out as the bytes git gave us
        stream.flush()
        buffer.write(text.encode('utf-8', 'surrogateescape'))
    stream.flush()
