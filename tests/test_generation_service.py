from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest

from lumina.services.generation_service import HOMEWORK_FALLBACK, HOMEWORK_SYSTEM_PROMPT, GenerationService
from lumina.utils.errors import NetworkError, ValidationError
from lumina.utils.helpers import RequestSequencer

PROFILE = "home"


def video_operation(done: bool, uri: str = None):
    videos = [SimpleNamespace(video=SimpleNamespace(uri=uri))] if uri else []
    return SimpleNamespace(
        name="models/veo/operations/op1",
        done=done,
        response=SimpleNamespace(generated_videos=videos),
        error=None,
    )


@pytest.fixture
def gemini():
    client = Mock()
    client.ask_with_search = AsyncMock(return_value={
        "text": "Think about what photosynthesis needs 🌱",
        "sources": [{"title": "BBC Bitesize", "uri": "https://bbc.co.uk/bitesize"}],
    })
    client.generate_image = AsyncMock(return_value="data:image/png;base64,AAAA")
    client.start_video = AsyncMock(return_value=video_operation(False))
    client.video_status = AsyncMock(return_value=video_operation(True, "https://video/1"))
    client.wait_for_video = AsyncMock(return_value=video_operation(True, "https://video/1"))
    client.download_video = AsyncMock(return_value=b"mp4")
    client.video_uri = Mock(side_effect=lambda op: op.response.generated_videos[0].video.uri
                            if op.response.generated_videos else None)
    return client


@pytest.fixture
def generation(gemini):
    return GenerationService(gemini, RequestSequencer())


async def test_homework_answer_is_published(generation, gemini):
    result = await generation.ask_homework(PROFILE, "How do plants make food?")

    assert result["stale"] is False
    assert result["sources"][0]["title"] == "BBC Bitesize"
    assert generation.latest(PROFILE, "homework") == result
    gemini.ask_with_search.assert_awaited_once_with("How do plants make food?", HOMEWORK_SYSTEM_PROMPT)


async def test_homework_fallback_text(generation, gemini):
    gemini.ask_with_search.return_value = {"text": None, "sources": []}
    result = await generation.ask_homework(PROFILE, "???")
    assert result["text"] == HOMEWORK_FALLBACK


async def test_blank_prompt_is_rejected_before_network(generation, gemini):
    with pytest.raises(ValidationError):
        await generation.ask_homework(PROFILE, "  ")
    with pytest.raises(ValidationError):
        await generation.create_image(PROFILE, "")
    gemini.ask_with_search.assert_not_called()
    gemini.generate_image.assert_not_called()


async def test_stale_result_is_not_displayed(generation, gemini):
    first = await generation.ask_homework(PROFILE, "First question")

    async def overtaken(*args, **kwargs):
        # 这次请求还没返回时，用户又发起了新的请求
        generation.sequencer.issue(PROFILE, "homework")
        return {"text": "late answer", "sources": []}

    gemini.ask_with_search.side_effect = overtaken
    late = await generation.ask_homework(PROFILE, "Second question")

    assert late["stale"] is True
    assert generation.latest(PROFILE, "homework") == first


async def test_features_are_sequenced_independently(generation):
    await generation.create_image(PROFILE, "A dragon", "16:9")
    result = await generation.ask_homework(PROFILE, "Question")
    assert result["stale"] is False
    assert generation.latest(PROFILE, "image")["aspect_ratio"] == "16:9"
    assert generation.latest("other-profile", "image") is None


async def test_diagram_uses_square_educational_prompt(generation, gemini):
    result = await generation.create_diagram(PROFILE, "Water cycle")
    prompt, ratio = gemini.generate_image.call_args.args
    assert "Water cycle" in prompt and "educational" in prompt.lower()
    assert ratio == "1:1"
    assert result["image_url"].startswith("data:image/png;base64,")


async def test_image_aspect_ratio_is_validated(generation):
    with pytest.raises(ValidationError):
        await generation.create_image(PROFILE, "A castle", "4:3")


async def test_start_video_returns_operation(generation):
    result = await generation.start_video(PROFILE, "A volcano erupting")
    assert result["operation"] == "models/veo/operations/op1"
    assert result["done"] is False
    assert result["video_uri"] is None


async def test_video_status_done_without_video_fails(generation, gemini):
    gemini.video_status.return_value = video_operation(True)
    with pytest.raises(NetworkError):
        await generation.video_status("models/veo/operations/op1")


async def test_generate_video_waits_for_result(generation, gemini):
    result = await generation.generate_video(PROFILE, "A volcano erupting")
    assert result["done"] is True
    assert result["video_uri"] == "https://video/1"
    gemini.wait_for_video.assert_awaited_once_with("models/veo/operations/op1")
    assert generation.latest(PROFILE, "video")["video_uri"] == "https://video/1"
