from pathlib import Path
from typing import Optional, Sequence, TextIO

from stagestat.collect import collect_status
from stagestat.config import load_config
from stagestat.engine import GitDiffEngine, open_repository, resolve_reference
from stagestat.report import print_report


def status(path: Path,
           reference: str = "HEAD",
           paths: Optional[Sequence[str]] = None,
           color: Optional[str] = None,
           stream: Optional[TextIO] = None) -> None:
    """
    Print the staged/unstaged line counts for every changed path of the
    repository containing `path`.

    Nothing is printed unless both comparisons complete.
    """
    repo = open_repository(path)
    try:
        config = load_config(repo, color=color, stream=stream)
        engine = GitDiffEngine(repo)
        store = collect_status(engine, resolve_reference(repo, reference), paths,
                               duplicate_policy=config.duplicate_policy)
        print_report(store, config, stream)
    finally:
        repo.close()
