"""Process-wide catalogue of knowledge sources."""

from __future__ import annotations

import threading
from datetime import date, datetime, time, timezone
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping

import yaml
from pydantic import ValidationError

from pharma_analyst.core.config import load_settings
from pharma_analyst.core.logger import get_logger
from pharma_analyst.core.schema import KnowledgeSource

LOGGER = get_logger("registry")

IMMUTABLE_FIELDS = frozenset({"id"})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class KnowledgeBaseRegistry:
    """Read-mostly registry of :class:`KnowledgeSource` records.

    Readers always see a complete immutable mapping; writers build a new mapping
    under a lock and swap it in, so concurrent updates cannot lose each other's
    fields and reads never block.
    """

    def __init__(
        self,
        sources: Iterable[KnowledgeSource] = (),
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._clock = clock
        self._write_lock = threading.Lock()
        self._sources: Mapping[str, KnowledgeSource] = MappingProxyType({})
        self.init(sources)

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    def init(self, sources: Iterable[KnowledgeSource]) -> None:
        """Replace the registry contents."""

        indexed: dict[str, KnowledgeSource] = {}
        for source in sources:
            if source.id in indexed:
                raise ValueError(f"duplicate knowledge source id: {source.id}")
            indexed[source.id] = source
        with self._write_lock:
            self._sources = MappingProxyType(indexed)

    def snapshot(self) -> Mapping[str, KnowledgeSource]:
        """All sources, active or not, keyed by id in declaration order."""

        return self._sources

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------
    def list_active(self) -> list[KnowledgeSource]:
        return [source for source in self._sources.values() if source.is_active]

    def get_by_id(self, source_id: str) -> KnowledgeSource | None:
        return self._sources.get(source_id)

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._sources

    def __len__(self) -> int:
        return len(self._sources)

    # ------------------------------------------------------------------
    # mutation
    # ------------------------------------------------------------------
    def update(self, source_id: str, patch: Mapping[str, Any]) -> bool:
        """Merge ``patch`` into a source and stamp ``last_updated``.

        Returns ``False`` when the id is unknown, whatever the patch holds.
        Unknown or immutable fields of a known source raise ``ValueError``.
        """

        with self._write_lock:
            current = self._sources.get(source_id)
            if current is None:
                return False
            _check_patch(patch)
            merged = {**current.model_dump(), **patch, "last_updated": self._clock()}
            updated = KnowledgeSource.model_validate(merged)
            sources = dict(self._sources)
            sources[source_id] = updated
            self._sources = MappingProxyType(sources)

        LOGGER.info("Knowledge source %s updated (%s)", source_id, ", ".join(sorted(patch)) or "touch")
        return True


def _check_patch(patch: Mapping[str, Any]) -> None:
    forbidden = IMMUTABLE_FIELDS.intersection(patch)
    if forbidden:
        raise ValueError(f"fields cannot be updated: {', '.join(sorted(forbidden))}")
    unknown = set(patch) - set(KnowledgeSource.model_fields)
    if unknown:
        raise ValueError(f"unknown knowledge source fields: {', '.join(sorted(unknown))}")


def _coerce_timestamp(value: Any) -> Any:
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    return value


def load_sources(path: Path) -> list[KnowledgeSource]:
    """Read the knowledge source catalogue from YAML."""

    with path.open("r", encoding="utf-8") as fp:
        payload = yaml.safe_load(fp) or {}

    entries = payload.get("sources") if isinstance(payload, dict) else None
    if not isinstance(entries, list):
        raise ValueError(f"{path.name}: expected a top-level 'sources' list")

    sources: list[KnowledgeSource] = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise ValueError(f"{path.name}: entry {index} is not a mapping")
        data = dict(entry)
        data["last_updated"] = _coerce_timestamp(data.get("last_updated"))
        try:
            sources.append(KnowledgeSource.model_validate(data))
        except ValidationError as exc:
            raise ValueError(f"{path.name}: invalid knowledge source at entry {index}: {exc}") from exc
    return sources


def load_registry(path: Path | None = None) -> KnowledgeBaseRegistry:
    source_path = path or load_settings().knowledge_sources_path
    sources = load_sources(source_path)
    LOGGER.debug("Loaded %d knowledge sources from %s", len(sources), source_path)
    return KnowledgeBaseRegistry(sources)


_registry: KnowledgeBaseRegistry | None = None


def get_registry() -> KnowledgeBaseRegistry:
    """Return the registry for the process, loading it on first use."""

    global _registry
    if _registry is None:
        _registry = load_registry()
    return _registry


def reset_registry() -> None:
    """Drop the process registry so the next access reloads it (used in tests)."""

    global _registry
    _registry = None


__all__ = [
    "KnowledgeBaseRegistry",
    "get_registry",
    "load_registry",
    "load_sources",
    "reset_registry",
]
