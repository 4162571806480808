"""Bounded, cancellable directory walk that finds Git working copies."""

from __future__ import annotations

import fnmatch
import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 4
DEFAULT_DIRECTORY_TIMEOUT = 5.0
SKIP_DIRECTORIES = frozenset({"node_modules", ".git", "vendor", "packages", ".npm", ".cache"})


@dataclass
class WalkResult:
    repositories: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    cancelled: bool = False


def _list_subdirectories(directory: Path) -> List[Path]:
    with os.scandir(directory) as entries:
        return [
            Path(entry.path)
            for entry in entries
            if entry.is_dir(follow_symlinks=False)
        ]


class RepositoryWalker:
    """Depth-first search for directories containing ``.git``.

    A directory that is a repository is reported and not descended into.
    Each directory listing runs on a worker thread and is abandoned after
    ``directory_timeout`` seconds, so a hung network mount costs one error
    string rather than the whole scan.
    """

    def __init__(
        self,
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
        exclude_patterns: Optional[Sequence[str]] = None,
        directory_timeout: float = DEFAULT_DIRECTORY_TIMEOUT,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        self.max_depth = max_depth
        self.exclude_patterns = list(exclude_patterns or [])
        self.directory_timeout = directory_timeout
        self.cancel_event = cancel_event or threading.Event()

    def is_excluded(self, directory: Path) -> bool:
        if directory.name in SKIP_DIRECTORIES:
            return True
        text = str(directory)
        return any(
            fnmatch.fnmatch(directory.name, pattern) or fnmatch.fnmatch(text, pattern)
            for pattern in self.exclude_patterns
        )

    def walk(self, roots: Sequence[Path | str]) -> WalkResult:
        result = WalkResult()
        seen: set[str] = set()
        executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="gitswitch-walk")
        try:
            for root in roots:
                root_path = Path(root).expanduser()
                if not root_path.is_dir():
                    logger.debug("Scan root missing", extra={"dir": str(root_path)})
                    continue
                self._visit(root_path, 0, executor, result, seen)
                if result.cancelled:
                    break
        finally:
            # A listing stuck on a dead mount must not hold the scan open.
            executor.shutdown(wait=False, cancel_futures=True)
        return result

    def _visit(
        self,
        directory: Path,
        depth: int,
        executor: ThreadPoolExecutor,
        result: WalkResult,
        seen: set[str],
    ) -> None:
        if self.cancel_event.is_set():
            result.cancelled = True
            return
        if depth > self.max_depth:
            return

        if (directory / ".git").exists():
            key = str(directory.resolve())
            if key not in seen:
                seen.add(key)
                result.repositories.append(key)
            return

        if self.is_excluded(directory):
            return

        future = executor.submit(_list_subdirectories, directory)
        try:
            children = future.result(timeout=self.directory_timeout)
        except FutureTimeout:
            future.cancel()
            result.errors.append(f"Timed out listing {directory}")
            logger.warning("Directory listing timed out", extra={"dir": str(directory)})
            return
        except OSError as exc:
            result.errors.append(f"Cannot read {directory}: {exc.strerror or exc}")
            logger.debug("Cannot access directory", extra={"dir": str(directory), "error": str(exc)})
            return

        for child in sorted(children):
            self._visit(child, depth + 1, executor, result, seen)
            if result.cancelled:
                return
