from typing import List, Optional

from pydantic import BaseModel, Field


class QuizQuestion(BaseModel):
    """测验题目"""
    question: str
    options: List[str] = Field(min_length=4)
    correctAnswer: str
    explanation: str


class QuizPayload(BaseModel):
    """模型按JSON Schema返回的测验结构"""
    questions: List[QuizQuestion]


class GroundingSource(BaseModel):
    title: str
    uri: str


class QuizAttempt(BaseModel):
    """一次测验的进行状态"""
    topic: str
    questions: List[QuizQuestion]
    current_index: int = 0
    selected_answer: Optional[str] = None
    show_feedback: bool = False
    score: int = 0
    xp_gained: int = 0
    complete: bool = False

    @property
    def current_question(self) -> QuizQuestion:
        return self.questions[self.current_index]


# 生成测验时交给模型的JSON Schema
QUIZ_SCHEMA = {
    "type": "object",
    "properties": {
        "questions": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "question": {"type": "string"},
                    "options": {"type": "array", "items": {"type": "string"}},
                    "correctAnswer": {"type": "string"},
                    "explanation": {"type": "string"},
                },
                "required": ["question", "options", "correctAnswer", "explanation"],
            },
        }
    },
    "required": ["questions"],
}
