from __future__ import annotations

import time

import pytest

from campaign_studio import animatic
from campaign_studio.audio import build_narration_asset
from campaign_studio.schemas import RenderFailed, RenderSuccess, Shot


class FakeAudio:
    """Audio track driven by the test instead of a clock."""

    def __init__(self, duration: float = 10.0) -> None:
        self.duration = duration
        self.current_time = 0.0
        self.playing = False
        self.listeners = []
        self.seeks = []

    def play(self) -> None:
        self.playing = True

    def pause(self) -> None:
        self.playing = False

    def seek(self, position_s: float) -> None:
        self.seeks.append(position_s)
        self.current_time = position_s

    def add_ended_listener(self, callback) -> None:
        self.listeners.append(callback)

    def remove_ended_listener(self, callback) -> None:
        self.listeners.remove(callback)

    def end(self) -> None:
        self.current_time = self.duration
        self.playing = False
        for callback in list(self.listeners):
            callback()


def _shots(lines):
    return [
        Shot(
            shot_number=i + 1,
            visual_prompt=f"visual {i + 1}",
            voiceover_script=line,
            render=RenderSuccess(image_url=f"data:image/png;base64,AAAA{i}"),
        )
        for i, line in enumerate(lines)
    ]


def test_timings_weight_by_line_length_with_floor():
    timings = animatic.compute_shot_timings(["abc", "x" * 50, ""])
    assert [round(t.end, 4) for t in timings] == [0.2222, 0.7778, 1.0]
    assert timings[0].start == 0.0
    assert timings[1].start == timings[0].end


def test_active_index_half_way():
    timings = animatic.compute_shot_timings(["abc", "x" * 50, ""])
    assert animatic.active_index(timings, 0.5) == 1
    assert animatic.active_index(timings, 0.0) == 0
    assert animatic.active_index(timings, 1.0) is None


@pytest.mark.parametrize(
    "progress,count,expected",
    [(0.0, 4, 0), (0.24, 4, 0), (0.25, 4, 1), (0.99, 4, 3), (1.0, 4, 3), (0.5, 1, 0)],
)
def test_equal_division_index(progress, count, expected):
    assert animatic.equal_division_index(progress, count) == expected


def test_only_rendered_shots_are_played():
    shots = _shots(["one line", "two line"])
    shots.append(Shot(shot_number=3, voiceover_script="gone", render=RenderFailed(message="nope")))
    player = animatic.AnimaticPlayer(shots)
    assert player.count == 2


def test_audio_mode_follows_audio_clock():
    audio = FakeAudio(duration=9.0)
    player = animatic.AnimaticPlayer(_shots(["abc", "x" * 50, ""]), audio)
    player.play()
    audio.current_time = 4.5
    player.tick()
    assert player.index == 1
    assert player.progress == pytest.approx(0.5)


def test_audio_end_pauses_without_wrapping():
    audio = FakeAudio(duration=9.0)
    player = animatic.AnimaticPlayer(_shots(["abc", "x" * 50, ""]), audio)
    player.play()
    audio.current_time = 8.0
    player.tick()
    audio.end()
    assert player.playing is False
    assert player.progress == 1.0
    assert player.index == 2


def test_play_after_completion_restarts_from_zero():
    audio = FakeAudio(duration=9.0)
    player = animatic.AnimaticPlayer(_shots(["abc", "def"]), audio)
    player.play()
    audio.end()
    player.play()
    assert player.playing
    assert player.index == 0
    assert player.progress == 0.0
    assert audio.seeks == [0.0]
    assert audio.playing


def test_play_and_pause_are_idempotent():
    audio = FakeAudio()
    player = animatic.AnimaticPlayer(_shots(["abc"]), audio)
    player.play()
    player.play()
    assert player.playing and audio.playing
    player.pause()
    player.pause()
    assert not player.playing and not audio.playing
    player.toggle()
    assert player.playing


def test_timer_mode_advances_and_stops_at_end():
    player = animatic.AnimaticPlayer(_shots(["a", "b"]), sample_interval_s=0.1, slide_duration_ms=3000)
    player.play()
    for _ in range(29):
        player.tick()
    assert player.index == 0
    assert player.progress == pytest.approx(29 / 60)
    player.tick()
    player.tick()
    assert player.index == 1
    for _ in range(40):
        player.tick()
    assert player.progress == 1.0
    assert player.playing is False
    assert player.index == 1


def test_restart_resets_and_plays():
    player = animatic.AnimaticPlayer(_shots(["a", "b"]))
    player.play()
    for _ in range(45):
        player.tick()
    player.restart()
    assert player.playing
    assert player.progress == 0.0
    assert player.index == 0


def test_frame_describes_current_shot():
    player = animatic.AnimaticPlayer(_shots(["first line", ""]))
    frame = player.frame()
    assert frame.scene_label == "SCENE 1 / 2"
    assert frame.caption == "first line"
    assert frame.zoom == "in"
    player.index = 1
    frame = player.frame()
    assert frame.caption == "visual 2"
    assert frame.zoom == "out"


def test_empty_player_has_no_frame_and_never_plays():
    player = animatic.AnimaticPlayer([])
    player.play()
    assert player.frame() is None
    assert player.playing is False


def test_close_stops_sampler_and_detaches_audio():
    audio = FakeAudio()
    player = animatic.AnimaticPlayer(_shots(["a", "b"]), audio, sample_interval_s=0.01)
    player.start()
    player.play()
    assert player.sampling
    player.close()
    assert not player.sampling
    assert audio.listeners == []
    assert audio.playing is False


def test_sampler_advances_timer_playback():
    player = animatic.AnimaticPlayer(_shots(["a"]), sample_interval_s=0.01, slide_duration_ms=50)
    with player:
        player.play()
        deadline = time.monotonic() + 2.0
        while player.playing and time.monotonic() < deadline:
            time.sleep(0.01)
    assert player.progress == 1.0


def test_wav_clock_tracks_position_with_injected_clock():
    now = [100.0]
    asset = build_narration_asset(b"\x00\x00" * 24000, voice="Puck")
    clock = animatic.WavPlaybackClock(asset, clock=lambda: now[0])
    assert clock.duration == pytest.approx(1.0)
    clock.play()
    now[0] += 0.25
    assert clock.current_time == pytest.approx(0.25)
    clock.pause()
    now[0] += 5.0
    assert clock.current_time == pytest.approx(0.25)
    clock.seek(0.9)
    assert clock.current_time == pytest.approx(0.9)


def test_wav_clock_fires_ended_listeners():
    asset = build_narration_asset(b"\x00\x00" * 240, voice="Puck")
    clock = animatic.WavPlaybackClock(asset)
    ended = []
    clock.add_ended_listener(lambda: ended.append(True))
    clock.play()
    deadline = time.monotonic() + 2.0
    while not ended and time.monotonic() < deadline:
        time.sleep(0.01)
    assert ended == [True]
    assert clock.playing is False
