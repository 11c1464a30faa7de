from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class Attachment(BaseModel):
    file_name: str
    file_url: str
    file_type: Optional[str] = None
    file_size: Optional[int] = None


class Mention(BaseModel):
    user_id: int
    name: str


class TaskCommentCreate(BaseModel):
    content: str
    attachments: List[Attachment] = []
    mentions: List[Mention] = []


class TaskCommentUpdate(BaseModel):
    content: str


class TaskComment(BaseModel):
    id: int
    task_id: int
    content: str
    attachments: List[Attachment] = []
    mentions: List[Mention] = []
    author_id: int
    author_name: str
    author_role: str
    is_edited: bool
    edited_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
