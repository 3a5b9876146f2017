from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from config import REDEFINE_FIRST, REDEFINE_LAST
from faults import ConfigError, UnknownProcedure


@dataclass
class ProcedureTable:
    """Integer-keyed table of captured procedure bodies.

    Bodies are stored as owned strings; callers only ever read them. With the
    default "first" policy a key keeps the body it was first defined with and
    later definitions are dropped. "last" overwrites instead.
    """

    policy: str = REDEFINE_FIRST
    _bodies: Dict[int, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.policy not in (REDEFINE_FIRST, REDEFINE_LAST):
            raise ConfigError(f"Unknown redefinition policy '{self.policy}'")

    def define(self, key: int, body: str) -> bool:
        """Store body under key. Returns False when the policy kept an older body."""
        key = int(key)
        if key in self._bodies and self.policy == REDEFINE_FIRST:
            return False
        self._bodies[key] = str(body)
        return True

    def lookup(self, key: int) -> str:
        try:
            return self._bodies[int(key)]
        except KeyError:
            raise UnknownProcedure(int(key))

    def get_optional(self, key: int) -> Optional[str]:
        return self._bodies.get(int(key))

    def has(self, key: int) -> bool:
        return int(key) in self._bodies

    def keys(self) -> List[int]:
        return sorted(self._bodies)

    def __len__(self) -> int:
        return len(self._bodies)
