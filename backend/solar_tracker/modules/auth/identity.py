from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class UserIdentity:
    """Who is making the request - the claims carried in a bearer token"""
    id: str
    username: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "username": self.username}
