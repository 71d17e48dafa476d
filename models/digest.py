# models/digest.py
import math
from dataclasses import dataclass


@dataclass(frozen=True)
class Message:
    """A single chat message. `ts` is both its time and its identity."""
    text: str
    ts: str

    @property
    def timestamp(self) -> float:
        return float(self.ts)

    @classmethod
    def from_payload(cls, payload: dict) -> "Message":
        """Builds a message from a Slack message object, rejecting non-numeric timestamps."""
        ts = str(payload.get("ts", "")).strip()
        try:
            value = float(ts)
        except ValueError:
            raise ValueError(f"Message timestamp is not numeric: {ts!r}")
        if not math.isfinite(value):
            raise ValueError(f"Message timestamp is not finite: {ts!r}")
        return cls(text=payload.get("text") or "", ts=ts)


@dataclass(frozen=True)
class MergeResult:
    topics: str
    changelog: str
    merged: bool = True


@dataclass
class DigestRunResult:
    """Outcome of one orchestrator pass."""
    messages: int
    checkpoint_before: float
    checkpoint_after: float
    documents_written: int = 0
    merged: bool = False

    @property
    def advanced(self) -> bool:
        return self.checkpoint_after > self.checkpoint_before

    def __repr__(self):
        return (f"<DigestRunResult messages={self.messages} "
                f"checkpoint={self.checkpoint_before}->{self.checkpoint_after} "
                f"written={self.documents_written} merged={self.merged}>")
