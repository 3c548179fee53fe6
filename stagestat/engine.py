"""
Diff engine collaborator for the status report.

The engine compares two roots (working tree vs index, or index vs a reference
tree) and pushes one FileStat per changed path into a StatConsumer. Line
counts come straight from `git diff --numstat`; binary files, which git
reports as '-', are counted in bytes instead (new side added, old side
deleted).
"""

import os
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import IO, Callable, Dict, Generator, List, Optional, Sequence

from git import Repo, Blob, Tree
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError
from git.util import hex_to_bin
from gitdb.exc import BadName, BadObject

from stagestat.exceptions import DiffEngineError, RootResolutionError

# Object id git uses for a tree with no entries. Always resolvable, even in a
# repository that has never stored it.
EMPTY_TREE_SHA = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"

_CHUNK_SIZE = 64 * 1024

# --- Events and interfaces ---

@dataclass(frozen=True)
class FileStat:
    path: str
    added: int
    deleted: int


class StatConsumer(ABC):
    @abstractmethod
    def on_file_stat(self, stat: FileStat) -> None: ...


class DiffEngine(ABC):
    @abstractmethod
    def diff_worktree(self, consumer: StatConsumer, paths: Optional[Sequence[str]] = None) -> None:
        """Report working tree vs index changes to `consumer`."""

    @abstractmethod
    def diff_index(self, reference: str, consumer: StatConsumer, paths: Optional[Sequence[str]] = None) -> None:
        """Report index vs `reference` changes to `consumer`."""


# --- Repository roots ---

def open_repository(path: str | os.PathLike) -> Repo:
    """Open the repository containing `path` and make sure its index is readable."""
    try:
        repo = Repo(path, search_parent_directories=True)
    except (InvalidGitRepositoryError, NoSuchPathError) as e:
        raise RootResolutionError(f"Not a git repository: {path}") from e

    if repo.bare or repo.working_tree_dir is None:
        raise RootResolutionError(f"Repository at {repo.git_dir} has no working tree")

    try:
        # A missing index file just means an empty index.
        entry_count = len(read_index(repo))
    except GitCommandError as e:
        raise RootResolutionError(f"Cannot read index of {repo.working_tree_dir}: {e}") from e

    logging.debug(f"Opened {repo.working_tree_dir} ({entry_count} index entries)")
    return repo


def read_index(repo: Repo) -> Dict[str, bytes]:
    """
    Map every merged (stage 0) index path to its binary blob id.

    The index is listed by git itself, so paths that are not valid UTF-8 come
    back surrogate-escaped instead of failing to decode.
    """
    output = repo.git.ls_files('--stage', '-z', stdout_as_string=False)
    entries = {}
    for record in output.split(b'\0'):
        if not record:
            continue
        info, _, path = record.partition(b'\t')
        _mode, hexsha, stage = info.split(b' ')
        if stage == b'0':
            entries[path.decode('utf-8', 'surrogateescape')] = hex_to_bin(hexsha)
    return entries


def resolve_reference(repo: Repo, name: str = "HEAD") -> str:
    """
    Resolve `name` to an object id to compare the index against.

    Falls back to the empty tree when the name does not resolve, which is the
    normal state of a repository without commits.
    """
    try:
        return repo.rev_parse(name).hexsha
    except (BadName, BadObject, ValueError) as e:
        if name == "HEAD":
            logging.debug(f"HEAD does not resolve ({e}), comparing against the empty tree.")
        else:
            logging.warning(f"Reference '{name}' does not resolve, comparing against the empty tree.")
        return EMPTY_TREE_SHA


# --- numstat parsing ---

def _iter_numstat_records(stream: IO[bytes]) -> Generator[bytes, None, None]:
    """Yield NUL-terminated records from `git diff --numstat -z` output as they arrive."""
    partial: List[bytes] = []
    while True:
        chunk = stream.read(_CHUNK_SIZE)
        if not chunk:
            break
        *records, tail = chunk.split(b'\0')
        if records:
            records[0] = b''.join(partial) + records[0]
            partial = []
        for record in records:
            if record:
                yield record
        if tail:
            partial.append(tail)
    if partial:
        yield b''.join(partial)


def parse_numstat_record(record: bytes) -> tuple[Optional[int], Optional[int], str]:
    """
    Split one numstat record into (added, deleted, path).

    Binary files have '-' for both counts; those come back as None.
    """
    parts = record.split(b'\t', 2)
    if len(parts) != 3 or not parts[2]:
        raise DiffEngineError(f"Malformed numstat record: {record!r}")

    added_raw, deleted_raw, path_raw = parts
    try:
        added = None if added_raw == b'-' else int(added_raw)
        deleted = None if deleted_raw == b'-' else int(deleted_raw)
    except ValueError as e:
        raise DiffEngineError(f"Malformed numstat counts: {record!r}") from e

    return added, deleted, path_raw.decode('utf-8', 'surrogateescape')


# --- Git engine ---

SizeLookup = Callable[[str], int]

def _get_blob_or_none(tree: Optional[Tree], path: str) -> Optional[Blob]:
    if tree is None or not path:
        return None
    try:
        obj = tree[path]
    except KeyError:
        return None
    return obj if isinstance(obj, Blob) else None


def _is_unmerged_placeholder(previous: FileStat, current: FileStat) -> bool:
    return previous.path == current.path and previous.added == 0 and previous.deleted == 0


class GitDiffEngine(DiffEngine):
    """DiffEngine backed by the git command line, driven through GitPython."""

    def __init__(self, repo: Repo) -> None:
        self.repo = repo
        self._index_entries = None

    def diff_worktree(self, consumer: StatConsumer, paths: Optional[Sequence[str]] = None) -> None:
        self._run_numstat([], paths, consumer,
                          old_size=self._index_size,
                          new_size=self._worktree_size)

    def diff_index(self, reference: str, consumer: StatConsumer, paths: Optional[Sequence[str]] = None) -> None:
        try:
            tree = None if reference == EMPTY_TREE_SHA else self.repo.tree(reference)
        except (BadName, BadObject, ValueError) as e:
            raise DiffEngineError(f"Cannot read tree for {reference}: {e}") from e

        def tree_size(path: str) -> int:
            blob = _get_blob_or_none(tree, path)
            return blob.size if blob is not None else 0

        self._run_numstat(['--cached', reference], paths, consumer,
                          old_size=tree_size,
                          new_size=self._index_size)

    # Sizes are only looked up for binary files.

    def _index_size(self, path: str) -> int:
        if self._index_entries is None:
            self._index_entries = read_index(self.repo)
        binsha = self._index_entries.get(path)
        if binsha is None:
            return 0
        return self.repo.odb.info(binsha).size

    def _worktree_size(self, path: str) -> int:
        full_path = os.path.join(self.repo.working_tree_dir, path)
        if not os.path.lexists(full_path):
            return 0
        return os.lstat(full_path).st_size

    def _run_numstat(self, args: List[str], paths: Optional[Sequence[str]],
                     consumer: StatConsumer, old_size: SizeLookup, new_size: SizeLookup) -> None:
        command = ['--numstat', '-z', '--no-renames', '--no-ext-diff', '--no-color', *args]
        if paths:
            command += ['--', *paths]

        logging.debug(f"Running git diff {' '.join(command)}")
        proc = None
        try:
            proc = self.repo.git.diff(*command, as_process=True)
            held: Optional[FileStat] = None
            for record in _iter_numstat_records(proc.stdout):
                added, deleted, path = parse_numstat_record(record)
                if added is None or deleted is None:
                    added, deleted = new_size(path), old_size(path)
                stat = FileStat(path, added, deleted)
                # git lists an unmerged path twice: a 0/0 placeholder, then
                # the diff against our side. Only the second one is reported.
                if held is not None and not _is_unmerged_placeholder(held, stat):
                    consumer.on_file_stat(held)
                held = stat
            if held is not None:
                consumer.on_file_stat(held)
            proc.wait()
        except GitCommandError as e:
            logging.error(f"git diff failed: {e}")
            raise DiffEngineError(f"git diff failed: {e}") from e
        except (OSError, BadName, BadObject) as e:
            logging.error(f"Error reading diff output: {e}")
            raise DiffEngineError(f"Error reading diff output: {e}") from e
        finally:
            # Stop git if we bailed out before draining its output
            child = getattr(proc, 'proc', None)
            if child is not None and child.poll() is None:
                child.kill()
                child.wait()
