from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from clientdesk.models.task_history import HistoryAction


class StringValue(BaseModel):
    kind: Literal["string"] = "string"
    value: str


class NumberValue(BaseModel):
    kind: Literal["number"] = "number"
    value: Union[int, float]


class DateValue(BaseModel):
    kind: Literal["date"] = "date"
    value: str  # ISO 8601


class EnumValue(BaseModel):
    kind: Literal["enum"] = "enum"
    value: str
    enum: Optional[str] = None


class JsonValue(BaseModel):
    kind: Literal["json"] = "json"
    value: Any = None


HistoryValue = Annotated[
    Union[StringValue, NumberValue, DateValue, EnumValue, JsonValue],
    Field(discriminator="kind"),
]


class TaskHistoryEntry(BaseModel):
    id: int
    task_id: int
    changed_by_id: int
    changed_by_name: str
    action: HistoryAction
    field: Optional[str] = None
    old_value: Optional[HistoryValue] = None
    new_value: Optional[HistoryValue] = None
    details: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
