import asyncio

import pytest

from lumina.agents.audio import (
    AudioFrame, AudioInput, AudioOutput, PlaybackHandle, PlaybackScheduler, TranscriptLog
)
from lumina.agents.audio_bridge import (
    TUTOR_SYSTEM_PROMPT, BridgeState, LiveConnector, LiveMessage, LiveSession, RealtimeAudioBridge
)
from lumina.utils.errors import ConnectionInterrupted, NetworkError, PermissionDenied

OUTPUT_RATE = 24000
ONE_SECOND = b"\x00\x00" * OUTPUT_RATE


class FakeMicrophone(AudioInput):
    def __init__(self, deny: bool = False):
        self.deny = deny
        self.opened = 0
        self.closed = 0
        self.frames = asyncio.Queue()

    async def open(self):
        if self.deny:
            raise PermissionDenied()
        self.opened += 1

    async def read_frame(self):
        return await self.frames.get()

    async def close(self):
        self.closed += 1
        self.frames.put_nowait(None)


class FakeSpeaker(AudioOutput):
    def __init__(self):
        self.now = 0.0
        self.played = []

    def current_time(self):
        return self.now

    async def play(self, frame, start_at):
        handle = PlaybackHandle(start_at, frame.duration)
        self.played.append(handle)
        return handle


class FakeSession(LiveSession):
    def __init__(self, close_error: Exception = None):
        self.sent = []
        self.incoming = asyncio.Queue()
        self.closed = False
        self.close_error = close_error

    async def send_audio(self, frame):
        self.sent.append(frame)

    async def receive(self):
        while True:
            item = await self.incoming.get()
            if item is None:
                return
            if isinstance(item, Exception):
                raise item
            yield item

    async def close(self):
        self.closed = True
        if self.close_error:
            raise self.close_error


class FakeConnector(LiveConnector):
    def __init__(self, session: FakeSession = None, error: Exception = None):
        self.session = session or FakeSession()
        self.error = error
        self.calls = []

    async def connect(self, system_prompt, voice):
        self.calls.append((system_prompt, voice))
        if self.error:
            raise self.error
        return self.session


async def wait_until(condition, timeout: float = 1.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not condition():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


def drain(bridge):
    events = []
    while not bridge.events.empty():
        events.append(bridge.events.get_nowait())
    return events


def make_bridge(connector=None, microphone=None, speaker=None):
    return RealtimeAudioBridge(
        connector or FakeConnector(),
        microphone or FakeMicrophone(),
        speaker or FakeSpeaker(),
        voice="Charon",
        output_sample_rate=OUTPUT_RATE,
    )


def test_frame_duration():
    assert AudioFrame(ONE_SECOND, OUTPUT_RATE).duration == 1.0
    assert AudioFrame(b"\x00\x00" * 4096, 16000).mime_type == "audio/pcm;rate=16000"


async def test_frames_play_back_to_back():
    speaker = FakeSpeaker()
    scheduler = PlaybackScheduler(speaker)
    starts = [await scheduler.schedule(AudioFrame(ONE_SECOND, OUTPUT_RATE)) for _ in range(3)]
    assert starts == [0.0, 1.0, 2.0]
    assert scheduler.next_start_time == 3.0


async def test_late_frame_starts_at_current_time():
    speaker = FakeSpeaker()
    scheduler = PlaybackScheduler(speaker)
    await scheduler.schedule(AudioFrame(ONE_SECOND, OUTPUT_RATE))
    speaker.now = 5.0
    assert await scheduler.schedule(AudioFrame(ONE_SECOND, OUTPUT_RATE)) == 5.0
    # 已播放完的片段被移除
    assert len(scheduler.sources) == 1


async def test_interrupt_stops_everything_and_resets_clock():
    speaker = FakeSpeaker()
    scheduler = PlaybackScheduler(speaker)
    for _ in range(3):
        await scheduler.schedule(AudioFrame(ONE_SECOND, OUTPUT_RATE))

    assert scheduler.interrupt() == 3
    assert all(handle.stopped for handle in speaker.played)
    assert not scheduler.sources
    assert scheduler.next_start_time == 0.0

    speaker.now = 0.5
    assert await scheduler.schedule(AudioFrame(ONE_SECOND, OUTPUT_RATE)) == 0.5


def test_transcript_is_bounded():
    log = TranscriptLog(16)
    for i in range(20):
        log.add("Student", str(i))
    entries = log.entries()
    assert len(log) == 16
    assert entries[0] == "Student: 4"
    assert entries[-1] == "Student: 19"


async def test_start_connects_with_tutor_prompt():
    connector = FakeConnector()
    bridge = make_bridge(connector)
    await bridge.start()
    try:
        assert bridge.state is BridgeState.ACTIVE
        assert connector.calls == [(TUTOR_SYSTEM_PROMPT, "Charon")]
    finally:
        await bridge.stop()
    assert bridge.state is BridgeState.IDLE


async def test_microphone_frames_are_sent():
    microphone = FakeMicrophone()
    connector = FakeConnector()
    async with make_bridge(connector, microphone) as bridge:
        await bridge.start()
        frame = AudioFrame(b"\x01\x00" * 4096, 16000)
        microphone.frames.put_nowait(frame)
        await wait_until(lambda: connector.session.sent)
        assert connector.session.sent == [frame]
    assert microphone.closed == 1


async def test_remote_messages_drive_playback_and_transcript():
    speaker = FakeSpeaker()
    connector = FakeConnector()
    bridge = make_bridge(connector, speaker=speaker)
    await bridge.start()
    try:
        session = connector.session
        session.incoming.put_nowait(LiveMessage(input_transcript="What is a fraction?"))
        session.incoming.put_nowait(LiveMessage(audio=ONE_SECOND, output_transcript="Good question!"))
        session.incoming.put_nowait(LiveMessage(audio=ONE_SECOND))
        await wait_until(lambda: len(speaker.played) == 2)

        assert [h.start_at for h in speaker.played] == [0.0, 1.0]
        assert bridge.transcript.entries() == ["Student: What is a fraction?", "Tutor: Good question!"]

        session.incoming.put_nowait(LiveMessage(interrupted=True))
        await wait_until(lambda: all(h.stopped for h in speaker.played))
        assert bridge.scheduler.next_start_time == 0.0

        types = [event.type for event in drain(bridge)]
        assert types == ["transcript", "audio", "transcript", "audio", "interrupted"]
    finally:
        await bridge.stop()


async def test_permission_denied_leaves_bridge_idle():
    connector = FakeConnector()
    bridge = make_bridge(connector, FakeMicrophone(deny=True))

    with pytest.raises(PermissionDenied):
        await bridge.start()

    assert bridge.state is BridgeState.IDLE
    assert connector.calls == []
    assert isinstance(bridge.last_error, PermissionDenied)
    assert [event.type for event in drain(bridge)] == ["error"]


async def test_connect_failure_releases_microphone():
    microphone = FakeMicrophone()
    bridge = make_bridge(FakeConnector(error=RuntimeError("handshake failed")), microphone)

    with pytest.raises(NetworkError):
        await bridge.start()

    assert bridge.state is BridgeState.IDLE
    assert microphone.opened == 1
    assert microphone.closed == 1


async def test_transport_error_interrupts_connection():
    microphone = FakeMicrophone()
    connector = FakeConnector()
    bridge = make_bridge(connector, microphone)
    await bridge.start()

    connector.session.incoming.put_nowait(RuntimeError("socket reset"))
    await wait_until(lambda: bridge.state is BridgeState.IDLE and microphone.closed)

    assert isinstance(bridge.last_error, ConnectionInterrupted)
    assert connector.session.closed
    errors = [event for event in drain(bridge) if event.type == "error"]
    assert errors[0].data["message"] == "Connection error. Please try again."


async def test_remote_close_ends_session():
    connector = FakeConnector()
    bridge = make_bridge(connector)
    await bridge.start()
    connector.session.incoming.put_nowait(None)
    await wait_until(lambda: bridge.state is BridgeState.IDLE)
    assert [event.type for event in drain(bridge)] == ["closed"]


async def test_stop_is_idempotent():
    microphone = FakeMicrophone()
    connector = FakeConnector()
    bridge = make_bridge(connector, microphone)
    await bridge.start()

    await bridge.stop()
    await bridge.stop()

    assert microphone.closed == 1
    assert connector.session.closed
    assert [event.type for event in drain(bridge)] == ["closed"]


async def test_stop_releases_microphone_when_close_fails():
    microphone = FakeMicrophone()
    connector = FakeConnector(FakeSession(close_error=RuntimeError("already gone")))
    bridge = make_bridge(connector, microphone)
    await bridge.start()

    await bridge.stop()

    assert microphone.closed == 1
    assert bridge.state is BridgeState.IDLE


class SlowCloseSession(FakeSession):
    def __init__(self, delay: float = 0.2):
        super().__init__()
        self.delay = delay
        self.closing = asyncio.Event()

    async def close(self):
        self.closing.set()
        await asyncio.sleep(self.delay)
        await super().close()


async def test_stop_waits_for_stop_already_in_progress():
    microphone = FakeMicrophone()
    session = SlowCloseSession()
    bridge = make_bridge(FakeConnector(session), microphone)
    await bridge.start()
    pumps = list(bridge._tasks)

    # 远端关闭后内部的停止卡在 close() 上
    session.incoming.put_nowait(None)
    await asyncio.wait_for(session.closing.wait(), 1.0)

    await bridge.stop()

    assert session.closed
    assert microphone.closed == 1
    assert bridge.state is BridgeState.IDLE
    assert all(task.done() for task in pumps)
    assert [event.type for event in drain(bridge)] == ["closed"]
