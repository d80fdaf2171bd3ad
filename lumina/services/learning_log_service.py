import logging
from typing import Any, Dict, List

from lumina.models.learning_log import LearningLog
from lumina.repositories.base import CollectionStore
from lumina.repositories.learning_log_repository import LearningLogRepository
from lumina.utils.errors import ValidationError
from lumina.utils.helpers import generate_id, utc_now

logger = logging.getLogger(__name__)


class LearningLogService:
    """学习日志服务"""

    def __init__(self, store: CollectionStore):
        self.store = store
        self.log_repo = LearningLogRepository(store)

    def add(self, user_id: str, entry: Dict[str, Any]) -> LearningLog:
        """
        新增一条学习日志

        Args:
            user_id: 用户ID
            entry: summary（必填）、subject、mood、duration

        Returns:
            LearningLog: 分配了ID和时间的新记录
        """
        summary = (entry.get("summary") or "").strip()
        if not summary:
            raise ValidationError("Please write down what you learned first.")

        duration = int(entry.get("duration") or 30)
        if duration <= 0:
            raise ValidationError("Duration must be a positive number of minutes.")

        log = LearningLog(
            id=generate_id(),
            user_id=user_id,
            date=utc_now(),
            summary=summary,
            subject=entry.get("subject") or "Mathematics",
            mood=entry.get("mood") or "💡 Inspired",
            duration=duration,
        )
        self.log_repo.append(log)
        logger.info(f"新增学习日志: 用户{user_id}, 日志{log.id}, {log.subject} {log.duration}分钟")
        return log

    def list_for(self, user_id: str) -> List[LearningLog]:
        """用户的全部日志，按时间倒序"""
        logs = self.log_repo.get_user_logs(user_id)
        return sorted(logs, key=lambda log: log.date, reverse=True)

    def remove(self, log_id: str) -> None:
        """删除日志；ID不存在时静默忽略"""
        removed = self.log_repo.delete(log_id)
        logger.info(f"删除学习日志: {log_id}, 删除条数{removed}")
