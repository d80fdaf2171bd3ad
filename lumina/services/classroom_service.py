import logging
from typing import List

from lumina.models.classroom import Assignment, StudentRosterItem
from lumina.models.user import User
from lumina.repositories.base import CollectionStore
from lumina.repositories.classroom_repository import ClassroomRepository
from lumina.utils.errors import ValidationError
from lumina.utils.helpers import generate_id, utc_now

logger = logging.getLogger(__name__)


class ClassroomService:
    """教师端：班级名单与布置作业"""

    def __init__(self, store: CollectionStore):
        self.store = store
        self.classroom_repo = ClassroomRepository(store)

    def roster(self, teacher_id: str) -> List[StudentRosterItem]:
        return self.classroom_repo.get_roster(teacher_id)

    def add_student(self, teacher_id: str, name: str, email: str) -> List[StudentRosterItem]:
        """加入名单，返回更新后的名单"""
        name, email = (name or "").strip(), (email or "").strip()
        if not name or not email:
            raise ValidationError("Student name and email are both required.")

        with self.store.locked():
            roster = self.classroom_repo.get_roster(teacher_id)
            roster.append(StudentRosterItem(name=name, email=email))
            self.classroom_repo.save_roster(teacher_id, roster)

        logger.info(f"教师{teacher_id} 添加学生: {email}")
        return roster

    def remove_student(self, teacher_id: str, email: str) -> List[StudentRosterItem]:
        with self.store.locked():
            roster = [s for s in self.classroom_repo.get_roster(teacher_id) if s.email != email]
            self.classroom_repo.save_roster(teacher_id, roster)

        logger.info(f"教师{teacher_id} 移除学生: {email}")
        return roster

    def create_assignment(self, teacher: User, subject: str, title: str,
                          description: str, due_date: str) -> Assignment:
        """布置作业，分配给当前名单中的所有学生"""
        if not (title or "").strip() or not (description or "").strip() or not (due_date or "").strip():
            raise ValidationError("Title, description and due date are required.")

        assignment = Assignment(
            id=generate_id(),
            teacher_id=teacher.id,
            teacher_name=teacher.name,
            subject=subject or "Mathematics",
            title=title.strip(),
            description=description.strip(),
            due_date=due_date.strip(),
            student_emails=[s.email for s in self.classroom_repo.get_roster(teacher.id)],
            created_at=utc_now(),
        )
        self.classroom_repo.append_assignment(assignment)
        logger.info(f"教师{teacher.id} 布置作业 {assignment.id}，学生数{len(assignment.student_emails)}")
        return assignment

    def assignments_for_teacher(self, teacher_id: str) -> List[Assignment]:
        assignments = [a for a in self.classroom_repo.get_assignments() if a.teacher_id == teacher_id]
        return sorted(assignments, key=lambda a: a.created_at, reverse=True)

    def assignments_for_student(self, email: str) -> List[Assignment]:
        wanted = (email or "").lower()
        assignments = [
            a for a in self.classroom_repo.get_assignments()
            if wanted in (e.lower() for e in a.student_emails)
        ]
        return sorted(assignments, key=lambda a: a.created_at, reverse=True)
