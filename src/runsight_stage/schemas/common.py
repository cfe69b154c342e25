"""Response envelope shared by every endpoint."""

from __future__ import annotations

from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, Field

DataT = TypeVar("DataT")


class Envelope(BaseModel, Generic[DataT]):
    """Success or error wrapper around a payload."""

    status: Literal["success", "error"] = Field(..., description="Outcome of the request")
    message: str = Field(..., description="Human-readable summary")
    data: DataT | None = Field(None, description="Payload on success")
    error: Any | None = Field(None, description="Error payload on failure")


def success(message: str, data: DataT) -> Envelope[DataT]:
    return Envelope(status="success", message=message, data=data)
