"""
Command Models

Every handler returns a CommandResult, whatever happened.
The transport never receives an exception.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class CommandContext(BaseModel):
    """Input to a command handler."""

    user_id: str = Field(..., min_length=1)
    message: str = Field(
        default="",
        description="Original chat text"
    )
    command: Optional[str] = Field(
        default=None,
        description="Resolved command name, if any"
    )
    args: dict[str, Any] = Field(
        default_factory=dict,
        description="Command arguments (validated by the handler)"
    )


class ExportAttachment(BaseModel):
    """A document produced by a command, sent alongside the text reply."""

    filename: str = Field(..., min_length=1)
    content: bytes
    mime_type: str = "text/csv"
    caption: Optional[str] = None


class CommandResult(BaseModel):
    """Outcome of one handler invocation."""

    success: bool
    message: str
    data: dict[str, Any] = Field(default_factory=dict)
    requires_confirmation: bool = Field(
        default=False,
        description="A pending confirmation was stored by this command"
    )
    attachment: Optional[ExportAttachment] = None

    @classmethod
    def failure(cls, message: str, **data: Any) -> "CommandResult":
        return cls(success=False, message=message, data=data)
