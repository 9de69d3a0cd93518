"""
Call Session Use Case

Client-side call lifecycle: one CallSession at a time, driven by local user
intents and relay events.
"""

from use_cases.call_session.call_session import CallSession, CallState
from use_cases.call_session.state_machine import CallStateMachine

__all__ = ["CallSession", "CallState", "CallStateMachine"]
