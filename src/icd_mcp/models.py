"""
Data models for ICD entities, search hits, chapters and tool results.
"""

from dataclasses import dataclass, field
from typing import Literal, Optional

from pydantic import BaseModel, Field

ACTIONS = ("lookup", "search", "chapters", "children", "api", "help")


@dataclass
class ICDEntity:
    """A single ICD-10 or ICD-11 classification record."""

    code: str
    title: str
    definition: Optional[str] = None
    long_definition: Optional[str] = None
    inclusions: Optional[list[str]] = None
    exclusions: Optional[list[str]] = None
    coding_note: Optional[str] = None
    parent: Optional[str] = None
    children: Optional[list[str]] = None
    uri: Optional[str] = None
    class_kind: Optional[str] = None
    browser_url: Optional[str] = None


@dataclass
class ICDSearchResult:
    code: str
    title: str
    uri: str
    score: Optional[float] = None
    chapter: Optional[str] = None


@dataclass
class ICDChapter:
    code: str
    title: str
    uri: str


@dataclass
class ToolResult:
    """MCP tool result: a list of text blocks plus an error flag."""

    content: list[dict] = field(default_factory=list)
    is_error: bool = False

    @classmethod
    def text(cls, text: str, is_error: bool = False) -> "ToolResult":
        return cls(content=[{"type": "text", "text": text}], is_error=is_error)

    @classmethod
    def error(cls, text: str) -> "ToolResult":
        return cls.text(text, is_error=True)

    @property
    def first_text(self) -> str:
        return self.content[0]["text"] if self.content else ""

    def to_dict(self) -> dict:
        result = {"content": self.content}
        if self.is_error:
            result["isError"] = True
        return result


class ICDParams(BaseModel):
    """Arguments accepted by the `icd` tool."""

    action: Literal["lookup", "search", "chapters", "children", "api", "help"]
    code: Optional[str] = Field(None, description="ICD code (e.g., A00, J18.9, BA00)")
    query: Optional[str] = Field(None, description="Search terms (ICD-11 only)")
    version: Optional[Literal["10", "11"]] = Field(None, description="ICD version: 10 or 11 (default: 11)")
    chapter: Optional[str] = Field(None, description="Chapter code to filter by")
    max_results: Optional[int] = Field(None, description="Maximum results (default 10)")
    path: Optional[str] = Field(None, description="API path for raw requests")
