"""
接口依赖
档案（X-Profile-Id 请求头）-> 集合存储 -> 会话服务 -> 当前用户；生成类服务为应用级单例。
"""

import logging
import re
from typing import Optional

from fastapi import Depends, Header, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from lumina.config.settings import settings
from lumina.models.user import User
from lumina.repositories.base import CollectionStore, SqlCollectionStore
from lumina.services.classroom_service import ClassroomService
from lumina.services.generation_service import GenerationService
from lumina.services.learning_log_service import LearningLogService
from lumina.services.practice_service import PracticeService
from lumina.services.session_service import SessionService
from lumina.utils.database import get_db

logger = logging.getLogger(__name__)

_PROFILE_PATTERN = re.compile(r"^[A-Za-z0-9_.-]{1,64}$")


def resolve_profile(value: Optional[str]) -> str:
    """档案ID，缺省时使用默认档案"""
    profile = (value or "").strip() or settings.DEFAULT_PROFILE
    if not _PROFILE_PATTERN.match(profile):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid profile id.")
    return profile


def get_profile(x_profile_id: Optional[str] = Header(default=None),
                profile: Optional[str] = Query(default=None)) -> str:
    # 浏览器WebSocket无法设置请求头，允许用 ?profile= 代替
    return resolve_profile(x_profile_id or profile)


def get_store(profile: str = Depends(get_profile), db: Session = Depends(get_db)) -> CollectionStore:
    return SqlCollectionStore(db, namespace=profile)


def get_session_service(store: CollectionStore = Depends(get_store)) -> SessionService:
    return SessionService(store)


def get_log_service(store: CollectionStore = Depends(get_store)) -> LearningLogService:
    return LearningLogService(store)


def get_classroom_service(store: CollectionStore = Depends(get_store)) -> ClassroomService:
    return ClassroomService(store)


def get_current_user(sessions: SessionService = Depends(get_session_service)) -> User:
    """当前登录用户，未登录返回401"""
    user = sessions.restore_session()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Please log in first.")
    return user


def get_teacher(user: User = Depends(get_current_user)) -> User:
    if not user.is_teacher:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only teachers can manage a classroom.")
    return user


def get_practice_service(request: Request) -> PracticeService:
    service = getattr(request.app.state, "practice_service", None)
    if service is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Practice service is unavailable.")
    return service


def get_generation_service(request: Request) -> GenerationService:
    service = getattr(request.app.state, "generation_service", None)
    if service is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Generation service is unavailable.")
    return service
