# portfolio_bot/memory/document.py
from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass
class Document:
    """A piece of source text plus where it came from."""

    page_content: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "page_content": self.page_content,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Document":
        return cls(
            page_content=data.get("page_content", ""),
            metadata=dict(data.get("metadata") or {}),
        )
