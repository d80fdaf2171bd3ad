import logging
from fastapi import APIRouter, Depends, HTTPException, status

from lumina.api.deps import get_current_user, get_session_service
from lumina.api.schemas.user_schemas import MasteryUpdate, UserResponse, XPAward
from lumina.models.user import User
from lumina.services.session_service import SessionService
from lumina.utils.errors import LuminaError

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)):
    """
    获取当前用户信息
    """
    return UserResponse.model_validate(user)


@router.put("/me/mastery", response_model=UserResponse)
async def update_mastery(data: MasteryUpdate,
                         user: User = Depends(get_current_user),
                         sessions: SessionService = Depends(get_session_service)):
    """
    更新某一科目的掌握度（0-100）
    """
    try:
        updated = sessions.set_mastery(user, data.subject, data.value)
        return UserResponse.model_validate(updated)
    except (HTTPException, LuminaError):
        raise
    except Exception as e:
        logger.error(f"更新掌握度失败: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not update mastery."
        )


@router.post("/me/xp", response_model=UserResponse)
async def award_xp(data: XPAward,
                   user: User = Depends(get_current_user),
                   sessions: SessionService = Depends(get_session_service)):
    """
    增加经验值
    """
    try:
        updated = sessions.award_xp(user, data.amount)
        return UserResponse.model_validate(updated)
    except (HTTPException, LuminaError):
        raise
    except Exception as e:
        logger.error(f"增加经验失败: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not award XP."
        )
