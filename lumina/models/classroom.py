from datetime import datetime
from typing import List

from pydantic import Field

from lumina.models.record import StoredRecord
from lumina.utils.helpers import utc_now

"""
班级模型
教师名单（按教师单独存储）与作业（全局集合，创建时分配给名单中的所有学生邮箱）。
"""


class StudentRosterItem(StoredRecord):
    name: str
    email: str


class Assignment(StoredRecord):
    id: str
    teacher_id: str
    teacher_name: str
    subject: str
    title: str
    description: str
    due_date: str
    student_emails: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
