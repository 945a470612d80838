from typing import Dict, List, Optional, Tuple
from .model import Effect


class EffectLog:
    """Append-only effect storage with a playback cursor.

    Readers page through everything with `since`; the playback runtime drains
    FIFO with `next_pending` / `mark_played`.
    """

    def __init__(self):
        self._log: List[Effect] = []
        self._played = 0

    def __len__(self) -> int:
        return len(self._log)

    def append(self, kind: str, ts_ms: int, unit_id: str, target_id: Optional[str] = None,
               amount: Optional[int] = None, data: Optional[Dict] = None) -> Effect:
        effect = Effect(seq=len(self._log), kind=kind, ts_ms=ts_ms, unit_id=unit_id,
                        target_id=target_id, amount=amount, data=data or {})
        self._log.append(effect)
        return effect

    def since(self, offset: int, limit: int = 1000) -> Tuple[List[Effect], int]:
        """Return effects starting from offset, up to limit, and the next offset."""
        offset = max(0, offset)
        chunk = self._log[offset: offset + limit]
        return chunk, offset + len(chunk)

    def next_pending(self) -> Optional[Effect]:
        if self._played < len(self._log):
            return self._log[self._played]
        return None

    def mark_played(self, seq: int) -> None:
        """Advance the playback cursor past `seq`."""
        self._played = max(self._played, min(seq + 1, len(self._log)))

    def mark_all_played(self) -> None:
        self._played = len(self._log)

    @property
    def pending(self) -> List[Effect]:
        return self._log[self._played:]

    def has_pending_for(self, unit_id: str) -> bool:
        return any(e.unit_id == unit_id for e in self.pending)
