from typing import Dict, List, Optional, Set, Tuple
from dataclasses import dataclass, field
from enum import Enum, auto

from stagestat.exceptions import DuplicateStatError

###############################################################################
# Phases and records
###############################################################################

class Phase(Enum):
    WORKTREE = auto() # working tree vs index ("unstaged")
    INDEX = auto()    # index vs reference ("staged")


class DuplicatePolicy(Enum):
    LAST_WINS = 'last-wins'
    ACCUMULATE = 'accumulate'
    REJECT = 'reject'


@dataclass
class LineChange:
    added: int = 0
    deleted: int = 0

    def is_empty(self) -> bool:
        return self.added == 0 and self.deleted == 0


@dataclass
class StatRecord:
    """Merged result of both phases for a single path."""
    path: str
    index_change: LineChange = field(default_factory=LineChange)
    worktree_change: LineChange = field(default_factory=LineChange)

    def change_for(self, phase: Phase) -> LineChange:
        match phase:
            case Phase.WORKTREE: return self.worktree_change
            case Phase.INDEX:    return self.index_change
        raise ValueError(f"Unknown phase: {phase}")


###############################################################################
# Store
###############################################################################

class StatStore:
    """
    Path-keyed collection of StatRecords.

    Records are created on the first event that mentions a path, from either
    phase. Each phase only ever touches its own sub-field of the record.
    """

    def __init__(self, duplicate_policy: DuplicatePolicy = DuplicatePolicy.LAST_WINS) -> None:
        self.duplicate_policy = duplicate_policy
        self._records: Dict[str, StatRecord] = {}
        self._seen: Set[Tuple[str, Phase]] = set()

    def upsert(self, path: str, phase: Phase, added: int, deleted: int) -> None:
        if not path:
            raise ValueError("Path must not be empty")
        if added < 0 or deleted < 0:
            raise ValueError(f"Negative line counts for {path}: +{added}/-{deleted}")

        record = self._records.get(path)
        if record is None:
            record = StatRecord(path)
            self._records[path] = record

        change = record.change_for(phase)
        key = (path, phase)

        if key in self._seen:
            match self.duplicate_policy:
                case DuplicatePolicy.REJECT:
                    raise DuplicateStatError(f"Duplicate {phase.name.lower()} event for {path}")
                case DuplicatePolicy.ACCUMULATE:
                    change.added += added
                    change.deleted += deleted
                    return
                case DuplicatePolicy.LAST_WINS:
                    pass

        self._seen.add(key)
        change.added = added
        change.deleted = deleted

    def all_records(self) -> List[StatRecord]:
        return list(self._records.values())

    def get(self, path: str) -> Optional[StatRecord]:
        return self._records.get(path)

    def __contains__(self, path: object) -> bool:
        return path in self._records

    def __len__(self) -> int:
        return len(self._records)
