"""In-process adapter for ``MemberRepository`` (tests, local development)."""

import threading
from dataclasses import replace
from typing import Dict, List, Optional

from .domain import Member, MemberRepository, Role


class InMemoryMemberRepository(MemberRepository):
    def __init__(self, members: Optional[List[Member]] = None):
        self._lock = threading.Lock()
        self._rows: Dict[str, Member] = {m.user_id: replace(m) for m in (members or [])}

    def get(self, user_id: str) -> Optional[Member]:
        with self._lock:
            row = self._rows.get(user_id)
            return replace(row) if row else None

    def save(self, member: Member) -> bool:
        with self._lock:
            created = member.user_id not in self._rows
            self._rows[member.user_id] = replace(member)
            return created

    def list(self, role: Optional[Role] = None) -> List[Member]:
        with self._lock:
            rows = [replace(m) for m in self._rows.values() if role is None or m.role == role]
        return sorted(rows, key=lambda m: m.user_id)
