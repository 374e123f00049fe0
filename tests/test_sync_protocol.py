"""Tests for the client-side reconciliation state machine."""

import pytest

from core.sync_protocol import MembershipState, RoomSync


def _snapshot(code="ROOM", video="http://v/a.mp4", current_time=0.0, playing=False):
    return {
        "roomCode": code,
        "videoUrl": video,
        "playerState": {"currentTime": current_time, "isPlaying": playing, "updatedAt": 1.0},
    }


def _sync_event(current_time, playing, event_id=1):
    return {
        "id": event_id,
        "type": "player-sync",
        "data": {"currentTime": current_time, "isPlaying": playing, "updatedAt": 2.0, "by": "bob"},
        "at": 2.0,
    }


@pytest.fixture
def sync(player, clock):
    return RoomSync(player, clock=clock)


@pytest.fixture
def joined(sync, clock):
    sync.join(_snapshot())
    clock.advance(1)
    return sync


def test_starts_not_joined(sync):
    assert sync.state is MembershipState.NOT_JOINED
    assert sync.watermark == 0
    assert sync.local_playback_changed() is None


def test_join_loads_video_and_state(sync, player):
    sync.join(_snapshot(current_time=42.0, playing=True))

    assert sync.state is MembershipState.JOINED
    assert sync.room_code == "ROOM"
    assert player.video_url == "http://v/a.mp4"
    assert player.current_time == 42.0
    assert player.paused is False
    assert sync.chat[-1].render() == "Joined room ROOM."
    assert sync.chat[-1].is_system


def test_join_without_video_leaves_player_alone(sync, player):
    sync.join(_snapshot(video="", current_time=42.0, playing=True))
    assert player.calls == []
    assert sync.joined


def test_drift_within_tolerance_does_not_seek(joined, player):
    """Local 10.0s vs incoming 10.4s stays put; 12.0s triggers a seek."""
    player.current_time = 10.0

    assert "seek" not in joined.apply_player_state({"currentTime": 10.4, "isPlaying": False})
    assert player.current_time == 10.0

    assert "seek" in joined.apply_player_state({"currentTime": 12.0, "isPlaying": False})
    assert player.current_time == 12.0


@pytest.mark.parametrize(
    "locally_paused,remote_playing,expected",
    [
        (True, True, ["play"]),
        (False, False, ["pause"]),
        (True, False, []),
        (False, True, []),
    ],
)
def test_play_pause_reconciliation(joined, player, locally_paused, remote_playing, expected):
    player.paused = locally_paused
    actions = joined.apply_player_state({"currentTime": 0.0, "isPlaying": remote_playing})
    assert actions == expected
    assert player.paused is (not remote_playing)


def test_feedback_suppression_window(joined, player, clock):
    """Local changes right after applying a remote state are not reported."""
    player.paused = False
    joined.apply_player_state({"currentTime": 0.0, "isPlaying": False})

    assert joined.is_suppressing()
    assert joined.local_playback_changed() is None

    clock.advance(0.1)
    assert joined.local_playback_changed() is None

    clock.advance(0.051)
    assert not joined.is_suppressing()
    assert joined.local_playback_changed() == {"currentTime": 0.0, "isPlaying": False}


def test_pause_triggered_by_remote_state_is_not_reported(make_player, clock):
    """The pause fired by applying a player-sync yields no outbound report."""
    reports = []

    def on_change(_name):
        report = sync.local_playback_changed()
        if report is not None:
            reports.append(report)

    engine = make_player(on_change=on_change)
    sync = RoomSync(engine, clock=clock)
    sync.join(_snapshot(playing=True))
    clock.advance(1)

    sync.apply_events(5.0, [_sync_event(30.0, False)])

    assert ("pause",) in engine.calls
    assert reports == []


def test_genuine_user_action_after_window_is_reported(joined, player, clock):
    joined.apply_player_state({"currentTime": 5.0, "isPlaying": True})
    clock.advance(0.2)

    player.pause()
    assert joined.local_playback_changed() == {"currentTime": 5.0, "isPlaying": False}


def test_apply_events_advances_watermark_even_when_empty(joined):
    assert joined.apply_events(1234.5, []) == 0
    assert joined.watermark == 1234.5


def test_apply_events_ignored_when_not_joined(sync):
    assert sync.apply_events(99.0, [_sync_event(3.0, True)]) == 0
    assert sync.watermark == 0


def test_video_updated_replaces_video(joined, player):
    player.current_time = 80.0
    player.paused = False

    joined.apply_events(10.0, [{
        "id": 2,
        "type": "video-updated",
        "data": {"videoUrl": "http://v/b.mp4", "by": "bob"},
        "at": 9.0,
    }])

    assert player.video_url == "http://v/b.mp4"
    assert player.current_time == 0.0
    assert joined.chat[-1].render() == "Video updated by bob."


def test_chat_message_is_display_only(joined, player):
    calls_before = list(player.calls)
    joined.apply_events(10.0, [{
        "id": 3,
        "type": "chat-message",
        "data": {"id": 1, "username": "bob", "text": "hi!", "timestamp": 9.0},
        "at": 9.0,
    }])

    assert joined.chat[-1].render() == "bob: hi!"
    assert not joined.chat[-1].is_system
    assert player.calls == calls_before
    assert not joined.is_suppressing()


def test_unknown_event_type_is_ignored(joined, player):
    calls_before = list(player.calls)
    assert joined.apply_events(10.0, [{"id": 4, "type": "volume", "data": {}, "at": 9.0}]) == 1
    assert player.calls == calls_before


def test_events_applied_in_order(joined, player):
    joined.apply_events(10.0, [_sync_event(30.0, True, 1), _sync_event(60.0, False, 2)])
    assert player.current_time == 60.0
    assert player.paused is True


def test_player_sync_without_video_is_ignored(sync, player):
    sync.join(_snapshot(video=""))
    assert sync.apply_player_state({"currentTime": 50.0, "isPlaying": True}) == []
    assert player.calls == []


def test_leave_resets_watermark_and_chat(joined):
    joined.apply_events(500.0, [])
    joined.leave()

    assert joined.state is MembershipState.NOT_JOINED
    assert joined.room_code == ""
    assert joined.watermark == 0
    assert len(joined.chat) == 0
    assert joined.local_playback_changed() is None


def test_join_other_room_starts_fresh(joined):
    joined.apply_events(500.0, [])
    joined.join(_snapshot(code="OTHER"))

    assert joined.room_code == "OTHER"
    assert joined.watermark == 0
    assert [line.render() for line in joined.chat] == ["Joined room OTHER."]
