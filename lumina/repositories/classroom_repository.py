import logging
from typing import Any, Dict, List, Type, TypeVar

from pydantic import ValidationError as PydanticValidationError

from lumina.models.classroom import Assignment, StudentRosterItem
from lumina.models.record import StoredRecord
from lumina.repositories.base import CollectionStore

logger = logging.getLogger(__name__)

ASSIGNMENTS = "assignments"

RecordType = TypeVar("RecordType", bound=StoredRecord)


def roster_key(teacher_id: str) -> str:
    return f"roster_{teacher_id}"


def _parse_records(model: Type[RecordType], records: List[Dict[str, Any]], name: str) -> List[RecordType]:
    """解析集合记录，跳过无法解析的条目"""
    parsed = []
    for record in records:
        try:
            parsed.append(model.model_validate(record))
        except PydanticValidationError as e:
            logger.warning(f"跳过{name}中无法解析的记录: {e}")
    return parsed


class ClassroomRepository:
    """教师名单与作业"""

    def __init__(self, store: CollectionStore):
        self.store = store

    def get_roster(self, teacher_id: str) -> List[StudentRosterItem]:
        key = roster_key(teacher_id)
        return _parse_records(StudentRosterItem, self.store.load_collection(key), key)

    def save_roster(self, teacher_id: str, roster: List[StudentRosterItem]) -> None:
        self.store.save_collection(roster_key(teacher_id), [s.to_dict() for s in roster])

    def get_assignments(self) -> List[Assignment]:
        return _parse_records(Assignment, self.store.load_collection(ASSIGNMENTS), ASSIGNMENTS)

    def append_assignment(self, assignment: Assignment) -> Assignment:
        with self.store.locked():
            records = self.store.load_collection(ASSIGNMENTS)
            records.append(assignment.to_dict())
            self.store.save_collection(ASSIGNMENTS, records)
        return assignment
