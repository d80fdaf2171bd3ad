#!/usr/bin/env python3
"""
练习服务模块
按主题生成测验（JSON Schema约束）与练习卷；测验进度按档案保存在内存中，答对一题加25经验。
"""

import logging
import threading
from typing import Dict, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from lumina.models.practice import QUIZ_SCHEMA, QuizAttempt, QuizPayload
from lumina.models.user import User
from lumina.services.progress_service import XP_PER_CORRECT_ANSWER
from lumina.services.session_service import SessionService
from lumina.utils.errors import NetworkError, ValidationError
from lumina.utils.helpers import RequestSequencer
from lumina.utils.llm_client import LLMClient

logger = logging.getLogger(__name__)

QUIZ_QUESTION_COUNT = 10


def quiz_prompt(topic: str, year_group: str) -> str:
    return (
        f'Create a quiz with {QUIZ_QUESTION_COUNT} multiple-choice questions about "{topic}" '
        f"suitable for a student in {year_group}. The tone should be encouraging."
    )


def worksheet_prompt(topic: str, year_group: str) -> str:
    return (
        f'Create a practice worksheet for a {year_group} student about "{topic}".\n'
        "Include:\n"
        "1. A brief 2-sentence summary of the topic.\n"
        "2. 5 short-answer practice questions.\n"
        '3. 1 fun "Challenge" question.\n'
        "4. An answer key at the very bottom.\n"
        "Format cleanly with headings using Markdown. Use emojis."
    )


class PracticeService:
    """测验与练习卷"""

    def __init__(self, llm_client: LLMClient, sequencer: RequestSequencer = None):
        self.llm_client = llm_client
        self.sequencer = sequencer or RequestSequencer()
        self._attempts: Dict[str, QuizAttempt] = {}
        self._lock = threading.Lock()
        logger.info("练习服务初始化完成")

    def get_attempt(self, profile: str) -> Optional[QuizAttempt]:
        with self._lock:
            return self._attempts.get(profile)

    def _set_attempt(self, profile: str, attempt: Optional[QuizAttempt]) -> None:
        with self._lock:
            if attempt is None:
                self._attempts.pop(profile, None)
            else:
                self._attempts[profile] = attempt

    async def start_quiz(self, profile: str, user: User, topic: str) -> Tuple[QuizAttempt, bool]:
        """
        生成新测验

        Returns:
            (QuizAttempt, stale): stale为True表示期间已有更新的请求，本结果不会成为当前测验
        """
        topic = (topic or "").strip()
        if not topic:
            raise ValidationError("Please enter a topic first.")

        token = self.sequencer.issue(profile, "quiz")
        messages = [{"role": "user", "content": quiz_prompt(topic, user.year_group)}]
        data = await self.llm_client.generate_json(messages, QUIZ_SCHEMA, name="quiz")

        try:
            payload = QuizPayload.model_validate(data)
        except PydanticValidationError as e:
            logger.error(f"测验结构不符合要求: {e}")
            raise NetworkError("Oops! I couldn't write a quiz for that topic. Try something else!") from e
        if not payload.questions:
            raise NetworkError("Could not generate questions. Please try again.")

        attempt = QuizAttempt(topic=topic, questions=payload.questions)
        stale = not self.sequencer.is_latest(profile, "quiz", token)
        if stale:
            logger.info(f"档案{profile} 的测验结果已过期，丢弃")
        else:
            self._set_attempt(profile, attempt)
            logger.info(f"档案{profile} 生成测验: {topic}, 题数{len(attempt.questions)}")
        return attempt, stale

    def check_answer(self, profile: str, sessions: SessionService, user: User,
                     option: str) -> Tuple[QuizAttempt, User]:
        """提交答案；答对时为用户增加经验。同一题重复提交会被忽略"""
        attempt = self._require_attempt(profile)
        if attempt.show_feedback or attempt.complete:
            return attempt, user
        if not option:
            raise ValidationError("Pick an answer first.")

        attempt.selected_answer = option
        attempt.show_feedback = True
        if option == attempt.current_question.correctAnswer:
            attempt.score += 1
            attempt.xp_gained += XP_PER_CORRECT_ANSWER
            user = sessions.award_xp(user, XP_PER_CORRECT_ANSWER)
            logger.info(f"用户{user.id} 答对，经验+{XP_PER_CORRECT_ANSWER}，当前{user.xp}")
        self._set_attempt(profile, attempt)
        return attempt, user

    def next_question(self, profile: str) -> QuizAttempt:
        attempt = self._require_attempt(profile)
        if attempt.current_index < len(attempt.questions) - 1:
            attempt.current_index += 1
            attempt.selected_answer = None
            attempt.show_feedback = False
        else:
            attempt.complete = True
        self._set_attempt(profile, attempt)
        return attempt

    def reset(self, profile: str) -> None:
        self._set_attempt(profile, None)

    def _require_attempt(self, profile: str) -> QuizAttempt:
        attempt = self.get_attempt(profile)
        if not attempt:
            raise ValidationError("Start a quiz first.")
        return attempt

    async def worksheet(self, profile: str, user: User, topic: str) -> Tuple[str, bool]:
        """生成Markdown练习卷"""
        topic = (topic or "").strip()
        if not topic:
            raise ValidationError("Please enter a topic first.")

        token = self.sequencer.issue(profile, "worksheet")
        content = await self.llm_client.generate_response(
            [{"role": "user", "content": worksheet_prompt(topic, user.year_group)}]
        )
        stale = not self.sequencer.is_latest(profile, "worksheet", token)
        return content or "Could not generate worksheet.", stale
