"""Merging a device-local collection with its cloud copy."""

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from recipe_snap.domain.errors import SyncError

_logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class MergeResult(Generic[T]):
    """Merged entries plus the local entries the remote side was missing."""

    entries: list[T]
    missing: list[T]


def merge(
    local: Sequence[T],
    remote: Sequence[T],
    key_fn: Callable[[T], str],
    recency_fn: Callable[[T], int],
    capacity: int | None = None,
) -> MergeResult[T]:
    """Union `local` into `remote`, newest first.

    Remote entries win for keys both sides have. Local entries with unseen keys
    are appended and reported in `missing` so the caller can push them. The
    sort is stable, so equal recency keeps remote-then-local order.

    Merging the result again against the same `remote` gives the same entries
    and the same `missing`: until the remote copy is refetched, local-only
    entries keep being reported. Pushes are upserts keyed like `key_fn`, so
    pushing them twice is harmless.
    """
    merged = list(remote)
    seen = {key_fn(entry) for entry in merged}
    missing: list[T] = []
    for entry in local:
        key = key_fn(entry)
        if key in seen:
            continue
        seen.add(key)
        merged.append(entry)
        missing.append(entry)
    merged.sort(key=recency_fn, reverse=True)
    if capacity is not None:
        merged = merged[:capacity]
    return MergeResult(entries=merged, missing=missing)


@dataclass
class Reconciler(Generic[T]):
    """Runs fetch, merge, push-missing for one collection."""

    name: str
    key_fn: Callable[[T], str]
    recency_fn: Callable[[T], int]
    capacity: int | None = None

    async def reconcile(
        self,
        local: Sequence[T],
        fetch_remote: Callable[[], Awaitable[list[T]]],
        push: Callable[[T], Awaitable[None]],
    ) -> list[T]:
        """Return the merged collection.

        Raises SyncError when the remote read fails; push failures are logged
        per entry and retried on the next reconcile.
        """
        try:
            remote = await fetch_remote()
        except Exception as exc:
            raise SyncError(f"Failed to fetch remote {self.name}") from exc

        result = merge(local, remote, self.key_fn, self.recency_fn, self.capacity)
        for entry in result.missing:
            try:
                await push(entry)
            except Exception:
                _logger.exception(
                    "Failed to push %s entry %s", self.name, self.key_fn(entry)
                )
        if result.missing:
            _logger.info(
                "Reconciled %s: pushed=%s total=%s",
                self.name,
                len(result.missing),
                len(result.entries),
            )
        return result.entries
