from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, Dict
from datetime import datetime

from lumina.models.user import YEAR_GROUPS


class SignupRequest(BaseModel):
    name: str
    secret_code: str
    year_group: str = "Year 7"
    target_grade: str = "Exceeding"
    role: str = Field(default="student", pattern="^(student|teacher)$")

    @field_validator("name")
    @classmethod
    def _name_required(cls, value):
        value = value.strip()
        if not value:
            raise ValueError("name is required")
        return value

    @field_validator("year_group")
    @classmethod
    def _known_year_group(cls, value):
        if value not in YEAR_GROUPS:
            raise ValueError("year_group must be one of Year 1 - Year 11")
        return value


class LoginRequest(BaseModel):
    name: str
    secret_code: str


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    year_group: str
    target_grade: str
    avatar: str
    join_date: datetime
    xp: int
    syllabus_mastery: Dict[str, int]
    role: str

    model_config = ConfigDict(
        from_attributes=True
    )


class SessionResponse(BaseModel):
    logged_in: bool
    user: Optional[UserResponse] = None


class MasteryUpdate(BaseModel):
    subject: str
    value: int = Field(ge=0, le=100)


class XPAward(BaseModel):
    amount: int = Field(ge=0)
