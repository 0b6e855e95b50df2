"""HTTP and WebSocket adapter for the task coordinator."""

from .server import VoiceQAServer, API_PREFIX

__all__ = ["VoiceQAServer", "API_PREFIX"]
