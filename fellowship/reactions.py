"""
Optimistic post reactions
Local reaction state with an explicit pending/confirmed/failed status per post,
rolled back to the last server-known value when a write fails
"""
from enum import Enum
from typing import Dict, List, Optional

from .schemas.posts import REACTION_TYPES


class ReactionStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class ReactionLedger:
    def __init__(self, user_id: str):
        self.user_id = user_id
        self.reactions: Dict[int, List[dict]] = {}
        self.server_mine: Dict[int, Optional[str]] = {}
        self.status: Dict[int, ReactionStatus] = {}

    def load(self, post_id: int, reactions: List[dict]):
        """Seed from a server read; whatever is there is confirmed."""
        self.reactions[post_id] = [dict(r) for r in reactions]
        self.server_mine[post_id] = self.mine(post_id)
        self.status[post_id] = ReactionStatus.CONFIRMED

    def mine(self, post_id: int) -> Optional[str]:
        for r in self.reactions.get(post_id, []):
            if r.get('user_id') == self.user_id:
                return r.get('type')
        return None

    def counts(self, post_id: int) -> Dict[str, int]:
        counts = {t: 0 for t in REACTION_TYPES}
        for r in self.reactions.get(post_id, []):
            if r.get('type') in counts:
                counts[r['type']] += 1
        return counts

    def _set_local(self, post_id: int, reaction_type: Optional[str]):
        others = [r for r in self.reactions.get(post_id, []) if r.get('user_id') != self.user_id]
        if reaction_type:
            others.append({'user_id': self.user_id, 'type': reaction_type})
        self.reactions[post_id] = others

    def apply(self, post_id: int, requested: Optional[str]) -> Optional[str]:
        """Apply locally and mark pending; picking the current reaction again clears it."""
        if requested is not None and requested not in REACTION_TYPES:
            raise ValueError(f'unknown reaction type: {requested}')
        final = None if requested == self.mine(post_id) else requested
        self._set_local(post_id, final)
        self.status[post_id] = ReactionStatus.PENDING
        return final

    def confirm(self, post_id: int, stored: Optional[str]):
        self.server_mine[post_id] = stored
        self._set_local(post_id, stored)
        self.status[post_id] = ReactionStatus.CONFIRMED

    def fail(self, post_id: int):
        self._set_local(post_id, self.server_mine.get(post_id))
        self.status[post_id] = ReactionStatus.FAILED
