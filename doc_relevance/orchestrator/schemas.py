"""Pydantic models for tool input/output and discovered pages.

Split into: tool request, discovery records, and tool result.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, HttpUrl, TypeAdapter, field_validator

_http_url = TypeAdapter(HttpUrl)


# ═══════════════ TOOL REQUEST ═══════════════

class FindRelevantPagesArgs(BaseModel):
    """Arguments of the ``find_relevant_doc_pages`` tool."""

    root_url: str
    query: str
    max_pages_to_discover: int = Field(default=20, ge=1, le=50)

    @field_validator("root_url")
    @classmethod
    def check_root_url(cls, value: str) -> str:
        # Validate as an http(s) URL but keep the caller's spelling for messages and discovery.
        try:
            _http_url.validate_python(value)
        except ValueError:
            raise ValueError("Invalid root URL provided.") from None
        return value


class ToolCallRequest(BaseModel):
    """HTTP body for ``POST /api/tools/call``."""

    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


# ═══════════════ DISCOVERY ═══════════════

class PageMetadata(BaseModel):
    """One discovered page. Identity is the URL; order is discovery order."""

    url: str
    title: str | None = None


# ═══════════════ TOOL RESULT ═══════════════

class TextContent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ToolResult(BaseModel):
    """Summary line plus zero or more URL lines, flagged success or error."""

    content: list[TextContent] = Field(default_factory=list)
    isError: bool = False
    source: str | None = None

    @classmethod
    def text(cls, *lines: str, source: str | None = None) -> ToolResult:
        return cls(content=[TextContent(text=line) for line in lines], source=source)

    @classmethod
    def error(cls, message: str) -> ToolResult:
        return cls(content=[TextContent(text=message)], isError=True)

    @property
    def lines(self) -> list[str]:
        return [item.text for item in self.content]
