from pydantic import BaseModel
from typing import List, Optional

from lumina.models.practice import GroundingSource


class HomeworkRequest(BaseModel):
    query: str


class PromptRequest(BaseModel):
    prompt: str


class ImageRequest(BaseModel):
    prompt: str
    aspect_ratio: str = "1:1"


class VideoRequest(BaseModel):
    prompt: str
    wait: bool = False


class GenerationBase(BaseModel):
    sequence: int
    stale: bool
    created_at: str


class HomeworkResponse(GenerationBase):
    query: str
    text: str
    sources: List[GroundingSource] = []


class ImageResponse(GenerationBase):
    prompt: str
    image_url: str
    aspect_ratio: str = "1:1"


class VideoResponse(GenerationBase):
    prompt: str
    operation: str
    done: bool
    video_uri: Optional[str] = None


class VideoStatusResponse(BaseModel):
    operation: str
    done: bool
    video_uri: Optional[str] = None
