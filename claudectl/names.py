"""Agent name allocation.

Agents are named from a fixed pool of short, memorable names. Allocation
prefers names that already have a worktree in the repository (so their
worktrees get reused) and draws the rest at random.
"""

import random
from typing import Iterable, List, Optional, Sequence

from claudectl.errors import PoolExhaustedError

AGENT_NAMES: tuple[str, ...] = (
    "alice",
    "betty",
    "clara",
    "diana",
    "emma",
    "felix",
    "grace",
    "henry",
    "iris",
    "james",
    "kate",
    "leo",
    "maya",
    "noah",
    "olive",
    "pearl",
    "quinn",
    "ruby",
    "sam",
    "tara",
    "uma",
    "vera",
    "wade",
    "xena",
    "yuki",
    "zara",
    "amber",
    "blake",
    "casey",
    "drew",
    "eden",
    "finn",
    "gwen",
    "hank",
    "ivy",
    "jade",
    "kira",
    "liam",
    "milo",
    "nora",
    "owen",
    "piper",
    "rex",
    "sage",
    "theo",
    "wren",
)


class NamePool:
    """An ordered, immutable set of agent names.

    Args:
        names: Candidate names in declared order (default: AGENT_NAMES)
        rng: Source of randomness for drawing new names
    """

    def __init__(
        self,
        names: Sequence[str] = AGENT_NAMES,
        rng: Optional[random.Random] = None,
    ) -> None:
        if len(set(names)) != len(names):
            raise ValueError("Name pool contains duplicate names")
        self._names = tuple(names)
        self._rng = rng or random.Random()

    @property
    def names(self) -> tuple[str, ...]:
        return self._names

    def __len__(self) -> int:
        return len(self._names)

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def is_valid(self, name: str) -> bool:
        """Check whether a name belongs to the pool."""
        return name in self._names

    def select_names(self, count: int, existing_names: Iterable[str] = ()) -> List[str]:
        """Pick agent names, preferring ones that already exist.

        Existing names are taken first in pool order (not by recency), then
        the remainder is drawn at random from names not yet in use.

        Args:
            count: Number of names wanted
            existing_names: Names that already have a worktree in this repo

        Returns:
            List of `count` unique names

        Raises:
            PoolExhaustedError: If too few unused names remain
        """
        if count < 0:
            raise ValueError(f"count must be non-negative, got {count}")

        existing = set(existing_names)
        result = [name for name in self._names if name in existing][:count]

        needed = count - len(result)
        if needed:
            result.extend(self._draw(needed, exclude=existing))
        return result

    def allocate_new(self, count: int, existing_names: Iterable[str] = ()) -> List[str]:
        """Pick names that are not in use, never reusing an existing one.

        Raises:
            PoolExhaustedError: If fewer than `count` names are unused
        """
        if count < 0:
            raise ValueError(f"count must be non-negative, got {count}")
        return self._draw(count, exclude=set(existing_names))

    def _draw(self, count: int, exclude: set[str]) -> List[str]:
        unused = [name for name in self._names if name not in exclude]
        if len(unused) < count:
            raise PoolExhaustedError(needed=count, available=len(unused))
        return self._rng.sample(unused, count)
