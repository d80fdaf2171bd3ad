from pydantic import BaseModel, ConfigDict, Field
from typing import List, Dict, Any
from datetime import datetime


class LogCreate(BaseModel):
    summary: str
    subject: str = "Mathematics"
    mood: str = "💡 Inspired"
    duration: int = Field(default=30, gt=0)


class LogResponse(BaseModel):
    id: str
    user_id: str
    date: datetime
    summary: str
    subject: str
    mood: str
    duration: int

    model_config = ConfigDict(
        from_attributes=True
    )


class LogOptionsResponse(BaseModel):
    subjects: List[str]
    moods: List[str]
    durations: List[int]


class WeeklyBucket(BaseModel):
    date: str
    day: str
    hours: float


class DashboardResponse(BaseModel):
    user_id: str
    name: str
    year_group: str
    target_grade: str
    join_date: datetime
    xp: int
    level: int
    level_progress: float
    xp_to_next_level: int
    streak: int
    total_study_hours: float
    weekly: List[WeeklyBucket]
    syllabus_mastery: Dict[str, int]
    recent_logs: List[LogResponse]
