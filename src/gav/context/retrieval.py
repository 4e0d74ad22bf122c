"""Default retrieval collaborator: keyword-scored snippets from the working tree."""

from __future__ import annotations

import asyncio
import fnmatch
import logging
import os
import re
from collections.abc import Sequence
from pathlib import Path
from typing import Callable, Protocol

from .budget import estimate_tokens, rank_sources
from .types import ContextRequest, ContextSource

LOGGER = logging.getLogger(__name__)

CostEstimator = Callable[[str], int]


class SourceProvider(Protocol):
    """Anything that can list and score candidate sources for a request."""

    async def candidates(self, request: ContextRequest) -> list[ContextSource]: ...


_STOP_WORDS = frozenset(
    {
        "the", "and", "for", "are", "but", "not", "you", "all", "can", "her", "was", "one",
        "our", "out", "this", "that", "with", "have", "from", "they", "will", "would",
        "there", "their", "what", "which", "who", "where", "when", "why", "how", "into",
        "about", "does", "file", "code", "please", "show", "tell", "explain", "find",
        "search", "make",
    }
)
_WORD_RE = re.compile(r"[^\w\s]")


def extract_keywords(query: str) -> list[str]:
    """Return unique lower-case keywords from ``query`` in first-seen order."""
    words = _WORD_RE.sub(" ", query.lower()).split()
    keywords: list[str] = []
    seen: set[str] = set()
    for word in words:
        if len(word) <= 2 or word in _STOP_WORDS or word in seen:
            continue
        seen.add(word)
        keywords.append(word)
    return keywords


class RepositorySourceProvider:
    """Scan a repository for files mentioning the request's keywords."""

    _ALWAYS_EXCLUDE_DIRS = {
        ".git",
        ".hg",
        ".svn",
        "__pycache__",
        ".mypy_cache",
        ".ruff_cache",
        ".pytest_cache",
        ".idea",
        ".vscode",
        "node_modules",
    }
    _TOP_LEVEL_EXCLUDE_DIRS = {"build", "dist", ".venv", "venv", "env", ".env", ".gav"}
    _EXCLUDE_FILE_SUFFIXES = {".pyc", ".pyo", ".log", ".tmp", ".cache", ".lock", ".png", ".jpg", ".gif"}
    _MAX_FILE_BYTES = 256_000
    _PATH_HIT_SCORE = 3.0
    _CONTENT_HIT_CAP = 5
    _PRIORITY_BOOST = 10.0

    def __init__(
        self,
        repo_root: Path | str,
        *,
        max_sources: int = 10,
        snippet_lines: int = 30,
        max_files: int = 2_000,
        cost_estimator: CostEstimator = estimate_tokens,
    ) -> None:
        self._repo_root = Path(repo_root).resolve()
        self._max_sources = max_sources
        self._snippet_lines = snippet_lines
        self._max_files = max_files
        self._estimate = cost_estimator

    @property
    def repo_root(self) -> Path:
        return self._repo_root

    async def candidates(self, request: ContextRequest) -> list[ContextSource]:
        keywords = extract_keywords(request.query)
        priority = [self._normalise(path) for path in request.priority_files]
        priority = [path for path in priority if path]
        files = await asyncio.to_thread(self._list_files, request.exclude_patterns)

        ordered: list[str] = list(dict.fromkeys(priority))
        ordered.extend(path for path in files if path not in ordered)

        scored = await asyncio.gather(
            *(self._score_file(path, keywords, path in priority) for path in ordered)
        )
        sources = [source for source in scored if source is not None]
        return rank_sources(sources)[: self._max_sources]

    async def _score_file(
        self,
        path: str,
        keywords: Sequence[str],
        is_priority: bool,
    ) -> ContextSource | None:
        content = await asyncio.to_thread(self._read_text, path)
        if content is None:
            return None

        score = 0.0
        reasons: list[str] = []
        if is_priority:
            score += self._PRIORITY_BOOST
            reasons.append("priority file")

        lowered_path = path.lower()
        lowered = content.lower()
        first_hit: int | None = None
        for keyword in keywords:
            if keyword in lowered_path:
                score += self._PATH_HIT_SCORE
                reasons.append(f"path matches '{keyword}'")
            count = lowered.count(keyword)
            if count:
                score += min(count, self._CONTENT_HIT_CAP)
                reasons.append(f"{count} match{'es' if count != 1 else ''} for '{keyword}'")
                index = lowered.find(keyword)
                if first_hit is None or index < first_hit:
                    first_hit = index

        if score <= 0:
            return None

        snippet = self._snippet(content, first_hit)
        return ContextSource(
            path=path,
            content=snippet,
            score=score,
            reasons=tuple(reasons),
            estimated_cost=self._estimate(snippet),
        )

    def _snippet(self, content: str, offset: int | None) -> str:
        lines = content.splitlines()
        if not lines:
            return ""
        start = 0
        if offset is not None:
            line_index = content.count("\n", 0, offset)
            start = max(0, line_index - self._snippet_lines // 3)
        return "\n".join(lines[start : start + self._snippet_lines])

    def _read_text(self, path: str) -> str | None:
        file_path = self._repo_root / path
        try:
            if not file_path.is_file() or file_path.stat().st_size > self._MAX_FILE_BYTES:
                return None
            return file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            LOGGER.debug("Skipping unreadable file %s", path, exc_info=True)
            return None

    def _normalise(self, path: str) -> str | None:
        candidate = Path(path)
        if candidate.is_absolute():
            try:
                candidate = candidate.resolve().relative_to(self._repo_root)
            except ValueError:
                return None
        normalised = os.path.normpath(candidate.as_posix()).replace(os.sep, "/")
        if normalised.startswith("../"):
            return None
        return normalised

    def _list_files(self, exclude_patterns: Sequence[str]) -> list[str]:
        root = self._repo_root
        files: list[str] = []
        for current_root, dirs, filenames in os.walk(root):
            rel_dir = Path(current_root).relative_to(root)
            at_top = rel_dir == Path(".")
            dirs[:] = sorted(
                d
                for d in dirs
                if d not in self._ALWAYS_EXCLUDE_DIRS
                and not (at_top and d in self._TOP_LEVEL_EXCLUDE_DIRS)
                and not d.startswith(".")
            )
            for filename in sorted(filenames):
                if filename.startswith(".") or Path(filename).suffix in self._EXCLUDE_FILE_SUFFIXES:
                    continue
                relative = (Path(filename) if at_top else rel_dir / filename).as_posix()
                if any(fnmatch.fnmatch(relative, pattern) for pattern in exclude_patterns):
                    continue
                files.append(relative)
                if len(files) >= self._max_files:
                    return files
        return files


__all__ = ["CostEstimator", "RepositorySourceProvider", "SourceProvider", "extract_keywords"]
