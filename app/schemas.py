from datetime import datetime
from typing import Any, Dict, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .parsing import DEFAULT_COURSE, to_wib

Priority = Literal["low", "medium", "high"]
Status = Literal["todo", "in_progress", "done"]

TITLE_MAX_LENGTH = 255
COURSE_MAX_LENGTH = 120

class TaskBase(BaseModel):
    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    course: str = Field(default=DEFAULT_COURSE, max_length=COURSE_MAX_LENGTH)
    due_at: datetime
    priority: Priority = "medium"
    status: Status = "todo"

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("course")
    @classmethod
    def default_course(cls, v):
        return v.strip() or DEFAULT_COURSE

    @field_validator("due_at")
    @classmethod
    def due_at_in_wib(cls, v):
        return to_wib(v)

class TaskCreate(TaskBase):
    user_id: str = Field(min_length=1, max_length=64)


# Dialogflow-style fulfillment envelope

class Intent(BaseModel):
    display_name: Optional[str] = Field(default=None, alias="displayName")

    model_config = ConfigDict(populate_by_name=True, extra="allow")

class QueryResult(BaseModel):
    intent: Optional[Intent] = None
    parameters: Optional[Any] = None
    query_text: Optional[str] = Field(default=None, alias="queryText")

    model_config = ConfigDict(populate_by_name=True, extra="allow")

class OriginalRequest(BaseModel):
    payload: Optional[Any] = None

    model_config = ConfigDict(extra="allow")

class WebhookRequest(BaseModel):
    query_result: Optional[QueryResult] = Field(default=None, alias="queryResult")
    original_request: Optional[OriginalRequest] = Field(default=None, alias="originalDetectIntentRequest")

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    @property
    def intent_name(self) -> str:
        intent = self.query_result.intent if self.query_result else None
        return ((intent.display_name if intent else None) or "").strip().lower()

    @property
    def parameters(self) -> Dict[str, Any]:
        if self.query_result and isinstance(self.query_result.parameters, dict):
            return self.query_result.parameters
        return {}

    def user_text(self) -> str:
        """Raw utterance: queryText first, then the messenger payload."""
        if self.query_result and self.query_result.query_text:
            return self.query_result.query_text

        payload = self.original_request.payload if self.original_request else None
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            return ""
        message = data.get("message")
        text = message.get("text") if isinstance(message, dict) else None
        if text is None:
            text = data.get("text")
        return text if isinstance(text, str) else ""

class WebhookResponse(BaseModel):
    fulfillmentText: str
