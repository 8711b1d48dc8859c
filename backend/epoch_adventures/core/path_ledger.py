"""Path Ledger — append-only choice history embedded in a Journey.

Invariants:
    - Entries are immutable once appended; append_entry returns a NEW list
    - Ledger length never exceeds max_length (runaway-traversal guard)
    - Serialized form is a JSON list of {node_id, choice_id, choice_text, timestamp}

Design Decisions:
    - Stored as a JSON column on the journey row: one read-modify-write unit,
      so the conditional journey UPDATE covers the ledger too
    - Analytics helpers are read-only folds over ledgers, never mutations
"""

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from epoch_adventures.core.errors import PathLimitExceededError

DEFAULT_MAX_PATH_LENGTH = 50


@dataclass(frozen=True)
class PathEntry:
    """One step: the node left, the choice taken, and when."""
    node_id: str
    choice_id: str
    choice_text: str
    timestamp: datetime

    def to_dict(self) -> dict:
        return {
            "node_id": self.node_id,
            "choice_id": self.choice_id,
            "choice_text": self.choice_text,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PathEntry":
        return cls(
            node_id=str(data["node_id"]),
            choice_id=str(data["choice_id"]),
            choice_text=data.get("choice_text", ""),
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )


def append_entry(
    path: list[dict] | None,
    entry: PathEntry,
    max_length: int = DEFAULT_MAX_PATH_LENGTH,
) -> list[dict]:
    """Return a copy of path with entry appended. Raises at the length bound."""
    current = list(path or [])
    if len(current) >= max_length:
        raise PathLimitExceededError(max_length)
    current.append(entry.to_dict())
    return current


def parse_entries(path: list[dict] | None) -> list[PathEntry]:
    return [PathEntry.from_dict(item) for item in path or []]


def last_entry(path: list[dict] | None) -> PathEntry | None:
    """Most recent step, i.e. where the traveller came from."""
    if not path:
        return None
    return PathEntry.from_dict(path[-1])


def choice_popularity(paths: Iterable[list[dict] | None]) -> Counter:
    """How often each choice_id was taken across many journeys."""
    counts: Counter = Counter()
    for path in paths:
        for item in path or []:
            counts[str(item["choice_id"])] += 1
    return counts
