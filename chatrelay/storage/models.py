from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class Identity:
    """Principal resolved from a bearer token for the duration of one request."""

    user_id: str
    token: str
    email: Optional[str] = None
    claims: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Conversation:
    conversation_id: str
    user_id: str
    summary: str
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Conversation":
        return cls(
            conversation_id=row["conversation_id"],
            user_id=row.get("user_id", ""),
            summary=row.get("summary", ""),
            created_at=row.get("created_at"),
        )

    def to_summary(self) -> Dict[str, Any]:
        return {"conversation_id": self.conversation_id, "summary": self.summary}


@dataclass
class Message:
    conversation_id: Any
    sender: str
    content: str
    id: Optional[Any] = None
    created_at: Optional[str] = None
    # Row exactly as the store returned it, unknown columns included
    row: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Message":
        return cls(
            row=dict(row),
            id=row.get("id", row.get("message_id")),
            conversation_id=row["conversation_id"],
            sender=row.get("from", ""),
            content=row.get("message", ""),
            created_at=row.get("created_at"),
        )

    def to_insert(self) -> Dict[str, Any]:
        """Columns written on insert; ids and timestamps are assigned by the store."""
        return {
            "conversation_id": self.conversation_id,
            "from": self.sender,
            "message": self.content,
        }

    def to_record(self) -> Dict[str, Any]:
        """The stored row as returned by the store, or the known fields if unsaved."""
        if self.row:
            return dict(self.row)
        record: Dict[str, Any] = {}
        if self.id is not None:
            record["id"] = self.id
        if self.created_at is not None:
            record["created_at"] = self.created_at
        record.update(self.to_insert())
        return record
