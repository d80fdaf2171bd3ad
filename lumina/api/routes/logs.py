import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status

from lumina.api.deps import get_current_user, get_log_service
from lumina.api.schemas.log_schemas import LogCreate, LogOptionsResponse, LogResponse
from lumina.models.learning_log import DURATIONS, MOODS, SUBJECTS
from lumina.models.user import User
from lumina.services.learning_log_service import LearningLogService
from lumina.utils.errors import LuminaError

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=List[LogResponse])
async def list_logs(user: User = Depends(get_current_user),
                    logs: LearningLogService = Depends(get_log_service)):
    """
    当前用户的学习日志，最新的在前
    """
    return [LogResponse.model_validate(log) for log in logs.list_for(user.id)]


@router.get("/options", response_model=LogOptionsResponse)
async def log_options():
    """日志表单可选项"""
    return LogOptionsResponse(subjects=SUBJECTS, moods=MOODS, durations=DURATIONS)


@router.post("/", response_model=LogResponse)
async def add_log(data: LogCreate,
                  user: User = Depends(get_current_user),
                  logs: LearningLogService = Depends(get_log_service)):
    """
    新增学习日志
    """
    try:
        log = logs.add(user.id, data.model_dump())
        return LogResponse.model_validate(log)
    except (HTTPException, LuminaError):
        raise
    except Exception as e:
        logger.error(f"新增学习日志失败: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not save your log."
        )


@router.delete("/{log_id}")
async def delete_log(log_id: str,
                     user: User = Depends(get_current_user),
                     logs: LearningLogService = Depends(get_log_service)):
    """
    删除学习日志（不存在时同样返回成功）
    """
    logs.remove(log_id)
    return {"deleted": log_id}
