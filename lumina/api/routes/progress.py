import logging
from fastapi import APIRouter, Depends, HTTPException, status

from lumina.api.deps import get_current_user, get_log_service
from lumina.api.schemas.log_schemas import DashboardResponse, LogResponse
from lumina.models.user import User
from lumina.services import progress_service
from lumina.services.learning_log_service import LearningLogService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(user: User = Depends(get_current_user),
                        logs: LearningLogService = Depends(get_log_service)):
    """
    仪表盘：等级、连续天数、近7天学习时长、各科掌握度、最近日志
    """
    try:
        data = progress_service.dashboard(user, logs.list_for(user.id))
        data["recent_logs"] = [LogResponse.model_validate(log) for log in data["recent_logs"]]
        return DashboardResponse(**data)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"获取仪表盘失败: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not load your dashboard."
        )
