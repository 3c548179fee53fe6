import logging
from typing import Optional, Sequence

from stagestat.engine import DiffEngine, FileStat, StatConsumer
from stagestat.store import DuplicatePolicy, Phase, StatStore


class PhaseRouter(StatConsumer):
    """Forwards engine events into the store under a fixed phase."""

    def __init__(self, store: StatStore, phase: Phase) -> None:
        self.store = store
        self.phase = phase
        self.count = 0

    def on_file_stat(self, stat: FileStat) -> None:
        self.store.upsert(stat.path, self.phase, stat.added, stat.deleted)
        self.count += 1


def collect_changes_worktree(engine: DiffEngine, store: StatStore,
                             paths: Optional[Sequence[str]] = None) -> int:
    router = PhaseRouter(store, Phase.WORKTREE)
    engine.diff_worktree(router, paths)
    logging.debug(f"Worktree phase: {router.count} changed paths")
    return router.count


def collect_changes_index(engine: DiffEngine, store: StatStore, reference: str,
                          paths: Optional[Sequence[str]] = None) -> int:
    router = PhaseRouter(store, Phase.INDEX)
    engine.diff_index(reference, router, paths)
    logging.debug(f"Index phase against {reference}: {router.count} changed paths")
    return router.count


def collect_status(engine: DiffEngine, reference: str,
                   paths: Optional[Sequence[str]] = None,
                   duplicate_policy: DuplicatePolicy = DuplicatePolicy.LAST_WINS) -> StatStore:
    """
    Run both comparisons and merge them into a fresh store.

    The worktree phase always runs first. Any exception raised by the engine
    propagates unchanged and the partially filled store is dropped with it.
    """
    store = StatStore(duplicate_policy)
    collect_changes_worktree(engine, store, paths)
    collect_changes_index(engine, store, reference, paths)
    return store
