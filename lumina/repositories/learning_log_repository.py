from collections import defaultdict
from typing import Dict, List
import logging

from pydantic import ValidationError as PydanticValidationError

from lumina.models.learning_log import LearningLog
from lumina.repositories.base import CollectionStore

logger = logging.getLogger(__name__)

LOGS = "logs"


class LearningLogRepository:
    """全局学习日志集合，按用户过滤靠全量扫描"""

    def __init__(self, store: CollectionStore):
        self.store = store

    def get_all(self) -> List[LearningLog]:
        logs = []
        for record in self.store.load_collection(LOGS):
            try:
                logs.append(LearningLog.model_validate(record))
            except PydanticValidationError as e:
                logger.warning(f"跳过无法解析的日志记录: {e}")
        return logs

    def get_user_logs(self, user_id: str) -> List[LearningLog]:
        return self.group_by_user().get(user_id, [])

    def group_by_user(self) -> Dict[str, List[LearningLog]]:
        """加载时按userId建立内存索引"""
        index = defaultdict(list)
        for log in self.get_all():
            index[log.user_id].append(log)
        return dict(index)

    def append(self, log: LearningLog) -> LearningLog:
        with self.store.locked():
            records = self.store.load_collection(LOGS)
            records.append(log.to_dict())
            self.store.save_collection(LOGS, records)
        return log

    def delete(self, log_id: str) -> int:
        """删除指定ID的日志，返回删除条数（可能为0）"""
        with self.store.locked():
            records = self.store.load_collection(LOGS)
            kept = [r for r in records if r.get("id") != log_id]
            self.store.save_collection(LOGS, kept)
        return len(records) - len(kept)
