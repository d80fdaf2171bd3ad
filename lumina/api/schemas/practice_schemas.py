from pydantic import BaseModel
from typing import List, Optional


class TopicRequest(BaseModel):
    topic: str


class AnswerRequest(BaseModel):
    option: str


class QuestionView(BaseModel):
    question: str
    options: List[str]
    # 作答后才返回答案和解析
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None


class QuizResponse(BaseModel):
    topic: str
    total: int
    current_index: int
    question: QuestionView
    selected_answer: Optional[str] = None
    is_correct: Optional[bool] = None
    score: int
    xp_gained: int
    complete: bool
    stale: bool = False
    user_xp: Optional[int] = None


class WorksheetResponse(BaseModel):
    topic: str
    content: str
    stale: bool = False
