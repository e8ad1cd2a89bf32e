# FILE: alttext/schemas.py
"""
Request and outcome models for the dispatcher.

DispatchRequest mirrors the JSON body sent by the browser extensions
(camelCase on the wire). DispatchOutcome is the terminal result of one
request; the HTTP layer only serializes it.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from alttext.media.schemas import ContentCategory, TransportPlan


class Operation(str, Enum):
    CONDENSE_TEXT = "condense_text"
    GENERATE_CAPTIONS = "generateCaptions"
    GENERATE_ALT_TEXT = "generateAltText"


class DispatchRequest(BaseModel):
    """Inbound body. Every field is optional here; the dispatcher validates per operation."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    operation: Optional[str] = None
    action: Optional[str] = None

    base64_data: Optional[str] = Field(None, alias="base64Data")
    mime_type: Optional[str] = Field(None, alias="mimeType")
    duration: Optional[float] = None
    is_video: bool = Field(False, alias="isVideo")
    use_compression: bool = Field(False, alias="useCompression")
    transcript_id: Optional[str] = Field(None, alias="transcriptId")

    text: Optional[str] = None
    directive: Optional[str] = None
    target_length: Optional[Union[int, str]] = Field(None, alias="targetLength")

    def resolve_operation(self) -> Operation:
        """`operation` wins over `action`; anything unrecognised is alt text."""
        if self.operation == Operation.CONDENSE_TEXT.value:
            return Operation.CONDENSE_TEXT
        if self.action == Operation.GENERATE_CAPTIONS.value:
            return Operation.GENERATE_CAPTIONS
        return Operation.GENERATE_ALT_TEXT


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    UPSTREAM_ERROR = "upstream_error"
    TRANSPORT_ERROR = "transport_error"
    VALIDATION_ERROR = "validation_error"


class DispatchState(str, Enum):
    RECEIVED = "received"
    CLASSIFIED = "classified"
    INSTRUCTIONS_SELECTED = "instructions_selected"
    TRANSPORT_PLANNED = "transport_planned"
    INLINE_READY = "inline_ready"
    UPLOADING = "uploading"
    UPLOADED = "uploaded"
    BACKEND_CALLED = "backend_called"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class DispatchOutcome:
    kind: OutcomeKind
    http_status: int = 200
    text: str = ""
    response_field: str = "altText"
    message: Optional[str] = None
    upstream_status: Optional[int] = None
    category: Optional[ContentCategory] = None
    plan: Optional[TransportPlan] = None
    states: List[DispatchState] = field(default_factory=list)

    def is_success(self) -> bool:
        return self.kind == OutcomeKind.SUCCESS

    def to_body(self) -> Dict[str, Any]:
        if self.is_success():
            return {self.response_field: self.text}
        return {"error": self.message or "An internal server error occurred"}
