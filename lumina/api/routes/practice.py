import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status

from lumina.api.deps import get_current_user, get_practice_service, get_profile, get_session_service
from lumina.api.schemas.practice_schemas import (
    AnswerRequest, QuestionView, QuizResponse, TopicRequest, WorksheetResponse
)
from lumina.models.practice import QuizAttempt
from lumina.models.user import User
from lumina.services.practice_service import PracticeService
from lumina.services.session_service import SessionService
from lumina.utils.errors import LuminaError

logger = logging.getLogger(__name__)
router = APIRouter()


def quiz_response(attempt: QuizAttempt, stale: bool = False, user_xp: Optional[int] = None) -> QuizResponse:
    """测验视图；作答前不返回答案"""
    question = attempt.current_question
    answered = attempt.show_feedback
    return QuizResponse(
        topic=attempt.topic,
        total=len(attempt.questions),
        current_index=attempt.current_index,
        question=QuestionView(
            question=question.question,
            options=question.options,
            correct_answer=question.correctAnswer if answered else None,
            explanation=question.explanation if answered else None,
        ),
        selected_answer=attempt.selected_answer,
        is_correct=(attempt.selected_answer == question.correctAnswer) if answered else None,
        score=attempt.score,
        xp_gained=attempt.xp_gained,
        complete=attempt.complete,
        stale=stale,
        user_xp=user_xp,
    )


@router.post("/quiz", response_model=QuizResponse)
async def start_quiz(data: TopicRequest,
                     profile: str = Depends(get_profile),
                     user: User = Depends(get_current_user),
                     practice: PracticeService = Depends(get_practice_service)):
    """
    按主题生成10道选择题
    """
    try:
        attempt, stale = await practice.start_quiz(profile, user, data.topic)
        return quiz_response(attempt, stale)
    except (HTTPException, LuminaError):
        raise
    except Exception as e:
        logger.error(f"生成测验失败: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not create a quiz."
        )


@router.get("/quiz", response_model=QuizResponse)
async def get_quiz(profile: str = Depends(get_profile),
                   user: User = Depends(get_current_user),
                   practice: PracticeService = Depends(get_practice_service)):
    attempt = practice.get_attempt(profile)
    if not attempt:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No quiz in progress.")
    return quiz_response(attempt)


@router.post("/quiz/answer", response_model=QuizResponse)
async def answer_question(data: AnswerRequest,
                          profile: str = Depends(get_profile),
                          user: User = Depends(get_current_user),
                          sessions: SessionService = Depends(get_session_service),
                          practice: PracticeService = Depends(get_practice_service)):
    """
    提交答案，答对加经验
    """
    attempt, user = practice.check_answer(profile, sessions, user, data.option)
    return quiz_response(attempt, user_xp=user.xp)


@router.post("/quiz/next", response_model=QuizResponse)
async def next_question(profile: str = Depends(get_profile),
                        user: User = Depends(get_current_user),
                        practice: PracticeService = Depends(get_practice_service)):
    return quiz_response(practice.next_question(profile))


@router.delete("/quiz")
async def reset_quiz(profile: str = Depends(get_profile),
                     user: User = Depends(get_current_user),
                     practice: PracticeService = Depends(get_practice_service)):
    practice.reset(profile)
    return {"reset": True}


@router.post("/worksheet", response_model=WorksheetResponse)
async def create_worksheet(data: TopicRequest,
                           profile: str = Depends(get_profile),
                           user: User = Depends(get_current_user),
                           practice: PracticeService = Depends(get_practice_service)):
    """
    生成Markdown练习卷
    """
    try:
        content, stale = await practice.worksheet(profile, user, data.topic)
        return WorksheetResponse(topic=data.topic.strip(), content=content, stale=stale)
    except (HTTPException, LuminaError):
        raise
    except Exception as e:
        logger.error(f"生成练习卷失败: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not generate worksheet."
        )
