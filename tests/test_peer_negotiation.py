import pytest
from aiortc import VideoStreamTrack

from conftest import make_user_media
from use_cases.media_capture import SwitchableTrack
from use_cases.peer_negotiation import (
    NegotiationError,
    PeerNegotiationAdapter,
    get_ice_servers,
)


@pytest.fixture
async def negotiated():
    fatal = []
    caller = PeerNegotiationAdapter(on_fatal=fatal.append, ice_servers=[])
    callee = PeerNegotiationAdapter(on_fatal=fatal.append, ice_servers=[])
    caller_media = make_user_media()
    callee_media = make_user_media()

    offers = [offer async for offer in caller.create_outbound_offer(caller_media)]
    answers = [answer async for answer in callee.create_inbound_answer(callee_media, offers[0])]
    await caller.apply_remote_answer(answers[0])

    yield caller, callee, caller_media, offers, answers, fatal

    await caller.teardown()
    await callee.teardown()
    caller_media.stop()
    callee_media.stop()


@pytest.mark.anyio
async def test_each_side_produces_exactly_one_description(negotiated) -> None:
    caller, callee, _, offers, answers, _ = negotiated

    assert len(offers) == 1
    assert len(answers) == 1
    assert offers[0]["type"] == "offer"
    assert answers[0]["type"] == "answer"
    assert "m=audio" in offers[0]["sdp"]
    assert "m=video" in offers[0]["sdp"]
    assert caller.peer_connection.signalingState == "stable"
    assert callee.peer_connection.signalingState == "stable"


@pytest.mark.anyio
async def test_swap_outgoing_track_round_trip(negotiated) -> None:
    caller, _, caller_media, _, _, _ = negotiated
    camera = caller_media.video_track
    screen = SwitchableTrack(VideoStreamTrack())

    assert caller.outgoing_video_track() is camera
    assert await caller.swap_outgoing_track(camera, screen) is True
    assert caller.outgoing_video_track() is screen
    assert await caller.swap_outgoing_track(screen, camera) is True
    assert caller.outgoing_video_track() is camera
    screen.stop()


@pytest.mark.anyio
async def test_swap_of_unsent_track_is_noop(negotiated) -> None:
    caller, _, caller_media, _, _, _ = negotiated
    stranger = SwitchableTrack(VideoStreamTrack())

    assert await caller.swap_outgoing_track(stranger, caller_media.video_track) is False
    assert caller.outgoing_video_track() is caller_media.video_track
    stranger.stop()


@pytest.mark.anyio
async def test_swap_before_negotiation_is_noop() -> None:
    adapter = PeerNegotiationAdapter(ice_servers=[])
    old = SwitchableTrack(VideoStreamTrack())
    new = SwitchableTrack(VideoStreamTrack())

    assert await adapter.swap_outgoing_track(old, new) is False
    assert adapter.outgoing_video_track() is None
    old.stop()
    new.stop()


@pytest.mark.anyio
async def test_teardown_is_idempotent_and_not_fatal() -> None:
    fatal = []
    adapter = PeerNegotiationAdapter(on_fatal=fatal.append, ice_servers=[])
    media = make_user_media()
    async for _ in adapter.create_outbound_offer(media):
        pass

    await adapter.teardown()
    await adapter.teardown()

    assert adapter.is_closed
    assert adapter.peer_connection.connectionState == "closed"
    assert fatal == []
    media.stop()


@pytest.mark.anyio
async def test_apply_answer_without_offer_fails() -> None:
    adapter = PeerNegotiationAdapter(ice_servers=[])

    with pytest.raises(NegotiationError):
        await adapter.apply_remote_answer({"type": "answer", "sdp": "v=0"})


@pytest.mark.anyio
@pytest.mark.parametrize("offer", [None, "v=0", {"type": "answer", "sdp": "v=0"}, {"type": "offer"}])
async def test_malformed_offer_is_a_negotiation_error(offer) -> None:
    adapter = PeerNegotiationAdapter(ice_servers=[])
    media = make_user_media()

    with pytest.raises(NegotiationError):
        async for _ in adapter.create_inbound_answer(media, offer):
            pass

    await adapter.teardown()
    media.stop()


@pytest.mark.anyio
async def test_negotiation_after_teardown_fails() -> None:
    adapter = PeerNegotiationAdapter(ice_servers=[])
    media = make_user_media()
    await adapter.teardown()

    with pytest.raises(NegotiationError):
        async for _ in adapter.create_outbound_offer(media):
            pass

    media.stop()


def test_get_ice_servers_parses_url_list() -> None:
    servers = get_ice_servers("stun:stun.example.org:3478, turn:turn.example.org")

    assert [server.urls for server in servers] == [
        "stun:stun.example.org:3478",
        "turn:turn.example.org",
    ]
    assert get_ice_servers("") == []
