from datetime import datetime

from pydantic import Field

from lumina.models.record import StoredRecord
from lumina.utils.helpers import utc_now

"""
学习日志模型
一次学习记录：用户ID（不做外键约束）、创建时间、总结、科目、心情、时长（分钟）。只增删，不修改。
"""

SUBJECTS = ["Mathematics", "Science", "English Lit", "History", "Geography", "Languages"]
MOODS = ["💡 Inspired", "💪 Productive", "😴 Tired", "🤯 Challenged", "🎯 Focused"]
DURATIONS = [15, 30, 45, 60, 90, 120]


class LearningLog(StoredRecord):
    id: str
    user_id: str
    date: datetime = Field(default_factory=utc_now)
    summary: str
    subject: str = "Mathematics"
    mood: str = "💡 Inspired"
    duration: int = 30
