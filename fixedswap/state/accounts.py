"""
Opaque account handles.

Ledgers key balances by ``AccountId``. A handle is only ever compared and
hashed; the label exists for ``repr`` and plays no part in equality.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field


_HANDLES = itertools.count(1)


@dataclass(frozen=True)
class AccountId:
    handle: int
    label: str = field(default="", compare=False)

    @classmethod
    def new(cls, label: str = "") -> "AccountId":
        """Allocate a fresh, process-unique handle."""
        return cls(handle=next(_HANDLES), label=label)

    def __repr__(self) -> str:
        if self.label:
            return f"AccountId({self.handle}, {self.label!r})"
        return f"AccountId({self.handle})"
