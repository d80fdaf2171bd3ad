import logging
from fastapi import APIRouter, Depends, HTTPException, status

from lumina.api.deps import get_session_service
from lumina.api.schemas.user_schemas import LoginRequest, SessionResponse, SignupRequest, UserResponse
from lumina.services.session_service import SessionService
from lumina.utils.errors import AuthError, LuminaError

logger = logging.getLogger(__name__)
router = APIRouter()

_AUTH_STATUS = {
    AuthError.NOT_FOUND: status.HTTP_401_UNAUTHORIZED,
    AuthError.NAME_TAKEN: status.HTTP_409_CONFLICT,
    AuthError.WEAK_CODE: 422,
}


def _raise_auth_error(error: AuthError):
    raise HTTPException(status_code=_AUTH_STATUS[error], detail=error.message)


@router.post("/signup", response_model=UserResponse, status_code=status.HTTP_200_OK)
async def signup(data: SignupRequest, sessions: SessionService = Depends(get_session_service)):
    """
    注册新学生（或教师），注册成功即登录
    """
    try:
        result = sessions.signup(data.model_dump())
        if isinstance(result, AuthError):
            _raise_auth_error(result)
        return UserResponse.model_validate(result)
    except (HTTPException, LuminaError):
        raise
    except Exception as e:
        logger.error(f"注册失败: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Sign up failed."
        )


@router.post("/login", response_model=UserResponse)
async def login(data: LoginRequest, sessions: SessionService = Depends(get_session_service)):
    """
    姓名 + 暗号登录
    """
    try:
        result = sessions.login(data.name, data.secret_code)
        if isinstance(result, AuthError):
            _raise_auth_error(result)
        return UserResponse.model_validate(result)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"登录失败: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Log in failed."
        )


@router.get("/session", response_model=SessionResponse)
async def restore_session(sessions: SessionService = Depends(get_session_service)):
    """
    恢复会话：返回当前档案的登录用户
    """
    user = sessions.restore_session()
    if not user:
        return SessionResponse(logged_in=False)
    return SessionResponse(logged_in=True, user=UserResponse.model_validate(user))


@router.post("/logout")
async def logout(sessions: SessionService = Depends(get_session_service)):
    sessions.logout()
    return {"logged_in": False}
