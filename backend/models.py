from datetime import datetime, tzinfo
from typing import Any, Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
)

Priority = Literal["low", "medium", "high"]
PRIORITIES: tuple[str, ...] = ("low", "medium", "high")
DEFAULT_PRIORITY: Priority = "medium"


class ExtractionContext(BaseModel):
    """Reference moment used to resolve relative dates ("tomorrow", "in 3 days")."""
    model_config = ConfigDict(frozen=True)

    reference_time: datetime

    @field_validator("reference_time")
    @classmethod
    def must_be_aware(cls, v: datetime) -> datetime:
        if v.tzinfo is None or v.utcoffset() is None:
            raise ValueError("reference_time must be timezone-aware")
        return v

    @classmethod
    def current(cls, tz: Optional[tzinfo] = None) -> "ExtractionContext":
        now = datetime.now(tz) if tz is not None else datetime.now().astimezone()
        return cls(reference_time=now)

    @property
    def tz(self) -> tzinfo:
        return self.reference_time.tzinfo


class ParsedTask(BaseModel):
    """Task record extracted from natural language.

    Wire names match the fields the provider is asked to return
    (Title, DueDate, ...); attributes use snake_case.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str = Field(..., alias="Title", min_length=1)
    description: Optional[str] = Field(None, alias="Description")
    due_date: Optional[datetime] = Field(None, alias="DueDate")
    priority: Priority = Field(DEFAULT_PRIORITY, alias="Priority")
    estimated_time: Optional[int] = Field(None, alias="EstimatedTime")
    category: Optional[str] = Field(None, alias="Category")

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("title must not be blank")
        return v

    @field_validator("priority", mode="before")
    @classmethod
    def coerce_priority(cls, v: Any) -> str:
        if isinstance(v, str) and v in PRIORITIES:
            return v
        return DEFAULT_PRIORITY

    @field_validator("due_date", mode="wrap")
    @classmethod
    def drop_invalid_due_date(cls, v: Any, handler, info: ValidationInfo) -> Optional[datetime]:
        # Only ISO 8601 strings; numbers and digit strings would be read as unix timestamps
        if not isinstance(v, (str, datetime)) or not v:
            return None
        if isinstance(v, str) and v.strip().lstrip("+-").replace(".", "", 1).isdigit():
            return None
        try:
            parsed = handler(v)
        except ValidationError:
            return None
        if parsed is not None and parsed.tzinfo is None:
            tz = (info.context or {}).get("tz")
            if tz is not None:
                parsed = parsed.replace(tzinfo=tz)
        return parsed

    @field_validator("estimated_time", mode="before")
    @classmethod
    def reject_bool_estimate(cls, v: Any) -> Any:
        # bool is an int subclass; true/false is not a duration
        if isinstance(v, bool):
            raise ValueError("estimated time must be a number of minutes")
        return v

    @field_validator("estimated_time")
    @classmethod
    def drop_non_positive_estimate(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v <= 0:
            return None
        return v


# Provider contract

class ChatMessage(BaseModel):
    role: Literal["system", "user"]
    content: str


class CompletionRequest(BaseModel):
    messages: list[ChatMessage]
    model: str
    max_tokens: int = Field(500, gt=0)
    json_output: bool = False
    json_schema: Optional[dict[str, Any]] = None


class Candidate(BaseModel):
    content: Optional[str] = None


class CompletionResponse(BaseModel):
    candidates: list[Candidate] = Field(default_factory=list)


# Storage / HTTP

class Task(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: Priority = DEFAULT_PRIORITY
    estimated_time: Optional[int] = None  # Minutes
    category: Optional[str] = None
    completed: bool = False
    created_at: str  # ISO format datetime string


class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: Priority = DEFAULT_PRIORITY
    estimated_time: Optional[int] = Field(None, gt=0)
    category: Optional[str] = None


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: Optional[Priority] = None
    estimated_time: Optional[int] = Field(None, gt=0)
    category: Optional[str] = None
    completed: Optional[bool] = None


class ParseTaskRequest(BaseModel):
    input: str = Field(..., min_length=1)


class ParseTaskResponse(BaseModel):
    task: Task
    message: str
