import logging
from fastapi import APIRouter, Depends, HTTPException, Response, status

from lumina.api.deps import get_current_user, get_generation_service, get_profile
from lumina.api.schemas.generation_schemas import (
    HomeworkRequest, HomeworkResponse, ImageRequest, ImageResponse,
    PromptRequest, VideoRequest, VideoResponse, VideoStatusResponse
)
from lumina.models.user import User
from lumina.services.generation_service import FEATURES, SUGGESTED_DIAGRAMS, GenerationService
from lumina.utils.errors import LuminaError

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/homework", response_model=HomeworkResponse)
async def ask_homework(data: HomeworkRequest,
                       profile: str = Depends(get_profile),
                       user: User = Depends(get_current_user),
                       generation: GenerationService = Depends(get_generation_service)):
    """
    作业答疑：只给提示，不给答案；附带检索来源
    """
    try:
        return await generation.ask_homework(profile, data.query)
    except (HTTPException, LuminaError):
        raise
    except Exception as e:
        logger.error(f"作业答疑失败: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not answer that question."
        )


@router.get("/diagram/suggestions")
async def diagram_suggestions():
    return {"suggestions": SUGGESTED_DIAGRAMS}


@router.post("/diagram", response_model=ImageResponse)
async def create_diagram(data: PromptRequest,
                         profile: str = Depends(get_profile),
                         user: User = Depends(get_current_user),
                         generation: GenerationService = Depends(get_generation_service)):
    """
    教学示意图
    """
    try:
        return await generation.create_diagram(profile, data.prompt)
    except (HTTPException, LuminaError):
        raise
    except Exception as e:
        logger.error(f"生成示意图失败: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not generate the diagram."
        )


@router.post("/image", response_model=ImageResponse)
async def create_image(data: ImageRequest,
                       profile: str = Depends(get_profile),
                       user: User = Depends(get_current_user),
                       generation: GenerationService = Depends(get_generation_service)):
    """
    自由绘图，支持 1:1 / 16:9 / 9:16
    """
    try:
        return await generation.create_image(profile, data.prompt, data.aspect_ratio)
    except (HTTPException, LuminaError):
        raise
    except Exception as e:
        logger.error(f"生成图片失败: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not generate the image."
        )


@router.post("/video", response_model=VideoResponse)
async def create_video(data: VideoRequest,
                       profile: str = Depends(get_profile),
                       user: User = Depends(get_current_user),
                       generation: GenerationService = Depends(get_generation_service)):
    """
    视频生成；wait=False 时立即返回任务名，由客户端轮询 /video/{operation}
    """
    try:
        if data.wait:
            return await generation.generate_video(profile, data.prompt)
        return await generation.start_video(profile, data.prompt)
    except (HTTPException, LuminaError):
        raise
    except Exception as e:
        logger.error(f"生成视频失败: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not generate the video."
        )


@router.get("/video/download")
async def download_video(uri: str,
                         user: User = Depends(get_current_user),
                         generation: GenerationService = Depends(get_generation_service)):
    """下载生成好的视频"""
    content = await generation.download_video(uri)
    return Response(content=content, media_type="video/mp4")


@router.get("/video/{operation:path}", response_model=VideoStatusResponse)
async def video_status(operation: str,
                       user: User = Depends(get_current_user),
                       generation: GenerationService = Depends(get_generation_service)):
    """查询视频任务状态"""
    return await generation.video_status(operation)


@router.get("/latest/{feature}")
async def latest_result(feature: str,
                        profile: str = Depends(get_profile),
                        user: User = Depends(get_current_user),
                        generation: GenerationService = Depends(get_generation_service)):
    """
    某功能当前应展示的结果（最新一次请求的结果）
    """
    if feature not in FEATURES:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown feature: {feature}")
    result = generation.latest(profile, feature)
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Nothing generated yet.")
    return result
