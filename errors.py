"""Shared error codes, user-facing messages and exceptions."""

from __future__ import annotations

CAPTURE_UNAVAILABLE = "CAPTURE_UNAVAILABLE"
RECOGNIZER_UNAVAILABLE = "RECOGNIZER_UNAVAILABLE"
CAPTURE_FAILED = "CAPTURE_FAILED"
NETWORK_ERROR = "NETWORK_ERROR"
AUTH_FAILED = "AUTH_FAILED"
ASR_PROTOCOL_ERROR = "ASR_PROTOCOL_ERROR"
REPETITION_LOOP = "REPETITION_LOOP"
RESTART_EXHAUSTED = "RESTART_EXHAUSTED"

ERROR_MESSAGES = {
    CAPTURE_UNAVAILABLE: "Select a microphone before starting.",
    RECOGNIZER_UNAVAILABLE: "Speech model is not loaded yet.",
    CAPTURE_FAILED: "Could not open the microphone.",
    NETWORK_ERROR: "Network failed, please retry.",
    AUTH_FAILED: "API key is invalid.",
    ASR_PROTOCOL_ERROR: "ASR response format is invalid.",
    REPETITION_LOOP: "Recognizer is repeating itself, audio buffer was reset.",
    RESTART_EXHAUSTED: "Recording stopped after a failed restart.",
}


class TranscriberError(Exception):
    code = ASR_PROTOCOL_ERROR

    def __init__(self, message: str = "", code: str | None = None) -> None:
        if code is not None:
            self.code = code
        super().__init__(message or ERROR_MESSAGES.get(self.code, self.code))

    @property
    def message(self) -> str:
        return str(self)


class CapturePreconditionError(TranscriberError):
    code = CAPTURE_UNAVAILABLE


class CaptureError(TranscriberError):
    code = CAPTURE_FAILED


class RecognizerInvocationError(TranscriberError):
    code = ASR_PROTOCOL_ERROR


class RepetitionLoopError(TranscriberError):
    code = REPETITION_LOOP


class RestartExhaustedError(TranscriberError):
    code = RESTART_EXHAUSTED
