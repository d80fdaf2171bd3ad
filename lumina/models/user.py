from datetime import datetime
from typing import Dict, Optional

from pydantic import Field, field_validator

from lumina.models.record import StoredRecord
from lumina.utils.helpers import utc_now

"""
用户模型
学生档案与进度：姓名（登录名，大小写不敏感唯一）、暗号、年级、目标成绩、头像、注册时间、经验值、各科掌握度。
"""

STARTER_SUBJECTS = ["Mathematics", "Science", "English Lit", "History"]
YEAR_GROUPS = [f"Year {i}" for i in range(1, 12)]


class User(StoredRecord):
    id: str
    name: str
    email: str = ""
    secret_code: Optional[str] = None
    year_group: str = "Year 7"
    target_grade: str = "Exceeding"
    avatar: str = ""
    join_date: datetime = Field(default_factory=utc_now)
    xp: int = 0
    syllabus_mastery: Dict[str, int] = Field(default_factory=dict)
    role: str = "student"

    @field_validator("xp", mode="before")
    @classmethod
    def _legacy_xp(cls, value):
        # 老用户记录没有xp字段
        return 0 if value is None else value

    @property
    def is_teacher(self) -> bool:
        return self.role == "teacher"
