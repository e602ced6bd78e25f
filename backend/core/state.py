# backend/core/state.py

from enum import Enum

class RecordingState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    TRANSCRIBING = "transcribing"
    CLOSED = "closed"
