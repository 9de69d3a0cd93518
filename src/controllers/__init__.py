from .relay_controller import create_app as create_relay_app
from .signaling_client import SignalingChannel
from tools.logger import *
from use_cases.call_session import CallStateMachine, CallState
from use_cases.media_capture import DeviceCapture
from aiortc.contrib.media import MediaBlackhole
import asyncio


async def _drain_remote_track(track):
    """Consume a remote track so its decoder keeps running without a renderer."""
    sink = MediaBlackhole()
    sink.addTrack(track)
    await sink.start()


async def main_call_task(
    server_url,
    call_target=None,
    auto_answer=False,
    duration=None,
    ca_file=None,
):
    """
    Headless call client: connect to the relay, optionally place or answer a
    call, hang up after `duration` seconds (or run until interrupted).
    """
    channel = SignalingChannel(ca_file=ca_file)
    machine = CallStateMachine(channel, DeviceCapture())
    identity_ready = asyncio.Event()
    drained = set()
    answered = set()
    tasks = set()

    def spawn(coro):
        task = asyncio.create_task(coro)
        tasks.add(task)
        task.add_done_callback(tasks.discard)

    def on_change(snapshot):
        session = snapshot["session"] or {}
        log_info(
            f"State: {snapshot['state']} | peer: {session.get('peer_identity')} | "
            f"media: {snapshot['has_local_media']}"
        )
        if snapshot["identity"]:
            identity_ready.set()

        current = machine.session
        if current is None:
            return
        for track in current.remote_tracks:
            if id(track) not in drained:
                drained.add(id(track))
                spawn(_drain_remote_track(track))
        if (
            auto_answer
            and current.state is CallState.RINGING_INCOMING
            and id(current) not in answered
        ):
            answered.add(id(current))
            spawn(machine.accept_call())

    machine.subscribe(on_change)

    await channel.connect(server_url)
    if not await machine.start():
        log_warning("Loading camera and microphone failed; calls are disabled")

    runner = asyncio.create_task(machine.run())
    try:
        await identity_ready.wait()
        log_info(f"Your ID: {machine.identity}")

        if call_target:
            await machine.initiate_call(call_target)

        if duration:
            await asyncio.sleep(duration)
            await machine.end_call()
        else:
            await runner
    finally:
        await machine.close()
        await channel.close()
        runner.cancel()
        for task in list(tasks):
            task.cancel()
