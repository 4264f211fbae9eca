from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True, slots=True)
class Actor:
    """Identity of the user performing a mutation, supplied by the session layer."""

    uid: str
    email: Optional[str] = None

    def as_dict(self) -> Dict[str, Optional[str]]:
        return {"uid": self.uid, "email": self.email}

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Optional[str]]]) -> Optional["Actor"]:
        if not raw or not raw.get("uid"):
            return None
        return cls(uid=str(raw["uid"]), email=raw.get("email"))


SYSTEM_ACTOR = Actor(uid="system", email=None)


__all__ = ["Actor", "SYSTEM_ACTOR"]
