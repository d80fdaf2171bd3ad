import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status

from lumina.api.deps import get_classroom_service, get_current_user, get_teacher
from lumina.api.schemas.classroom_schemas import AssignmentCreate, AssignmentResponse, RosterStudent
from lumina.models.user import User
from lumina.services.classroom_service import ClassroomService
from lumina.utils.errors import LuminaError

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/roster", response_model=List[RosterStudent])
async def get_roster(teacher: User = Depends(get_teacher),
                     classroom: ClassroomService = Depends(get_classroom_service)):
    """教师的班级名单"""
    return [RosterStudent.model_validate(s) for s in classroom.roster(teacher.id)]


@router.post("/roster", response_model=List[RosterStudent])
async def add_student(data: RosterStudent,
                      teacher: User = Depends(get_teacher),
                      classroom: ClassroomService = Depends(get_classroom_service)):
    """
    加入学生，返回更新后的名单
    """
    try:
        roster = classroom.add_student(teacher.id, data.name, data.email)
        return [RosterStudent.model_validate(s) for s in roster]
    except (HTTPException, LuminaError):
        raise
    except Exception as e:
        logger.error(f"添加学生失败: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not add the student."
        )


@router.delete("/roster/{email}", response_model=List[RosterStudent])
async def remove_student(email: str,
                         teacher: User = Depends(get_teacher),
                         classroom: ClassroomService = Depends(get_classroom_service)):
    roster = classroom.remove_student(teacher.id, email)
    return [RosterStudent.model_validate(s) for s in roster]


@router.post("/assignments", response_model=AssignmentResponse)
async def create_assignment(data: AssignmentCreate,
                            teacher: User = Depends(get_teacher),
                            classroom: ClassroomService = Depends(get_classroom_service)):
    """
    布置作业，分配给名单上的所有学生
    """
    try:
        assignment = classroom.create_assignment(
            teacher, data.subject, data.title, data.description, data.due_date
        )
        return AssignmentResponse.model_validate(assignment)
    except (HTTPException, LuminaError):
        raise
    except Exception as e:
        logger.error(f"布置作业失败: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not create the assignment."
        )


@router.get("/assignments", response_model=List[AssignmentResponse])
async def list_assignments(user: User = Depends(get_current_user),
                           classroom: ClassroomService = Depends(get_classroom_service)):
    """
    教师看到自己布置的作业，学生看到分配给自己的作业
    """
    if user.is_teacher:
        assignments = classroom.assignments_for_teacher(user.id)
    else:
        assignments = classroom.assignments_for_student(user.email)
    return [AssignmentResponse.model_validate(a) for a in assignments]
