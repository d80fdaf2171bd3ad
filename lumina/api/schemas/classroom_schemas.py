from pydantic import BaseModel, ConfigDict
from typing import List
from datetime import datetime


class RosterStudent(BaseModel):
    name: str
    email: str

    model_config = ConfigDict(
        from_attributes=True
    )


class AssignmentCreate(BaseModel):
    subject: str = "Mathematics"
    title: str
    description: str
    due_date: str


class AssignmentResponse(BaseModel):
    id: str
    teacher_id: str
    teacher_name: str
    subject: str
    title: str
    description: str
    due_date: str
    student_emails: List[str]
    created_at: datetime

    model_config = ConfigDict(
        from_attributes=True
    )
