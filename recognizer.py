"""Speech recognizer backends.

``WhisperPipelineRecognizer`` runs a Whisper checkpoint locally through the
transformers ASR pipeline. ``DashscopeRecognizer`` uploads each window as a
base64 WAV to the DashScope qwen3-asr-flash model and collects the streamed
result. Both raise ``RecognizerInvocationError`` on failure so the window
manager can count it.
"""

from __future__ import annotations

import base64
import io
import os
import threading
import wave
from typing import Any, Optional

import numpy as np

from errors import (
    ASR_PROTOCOL_ERROR,
    AUTH_FAILED,
    NETWORK_ERROR,
    RECOGNIZER_UNAVAILABLE,
    RecognizerInvocationError,
)
from interfaces import SpeechRecognizer
from models import TranscribeOptions

try:
    from transformers import pipeline as hf_pipeline
except Exception:  # pragma: no cover
    hf_pipeline = None  # type: ignore

try:
    import dashscope
except Exception:  # pragma: no cover
    dashscope = None  # type: ignore

LANGUAGE_CODES = {
    "english": "en",
    "chinese": "zh",
    "japanese": "ja",
    "korean": "ko",
    "german": "de",
    "french": "fr",
    "spanish": "es",
}


def _float_to_pcm16(samples: np.ndarray) -> bytes:
    clipped = np.clip(np.asarray(samples, dtype=np.float32), -1.0, 1.0)
    return (clipped * 32767.0).astype("<i2").tobytes()


def _pcm_to_wav_base64(
    pcm: bytes,
    sample_rate: int = 16000,
    channels: int = 1,
    sample_width: int = 2,
) -> str:
    """Convert raw PCM bytes to a base64-encoded WAV string."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(sample_width)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm)
    wav_bytes = buf.getvalue()
    return base64.b64encode(wav_bytes).decode("ascii")


def _to_invocation_error(exc: Exception) -> RecognizerInvocationError:
    """Map an SDK/network exception to a counted invocation error."""
    if isinstance(exc, RecognizerInvocationError):
        return exc
    message = str(exc) or type(exc).__name__
    low = message.lower()
    if "401" in low or "auth" in low or "api key" in low:
        return RecognizerInvocationError(message, code=AUTH_FAILED)
    if "timeout" in low or "network" in low or "connection" in low:
        return RecognizerInvocationError(message, code=NETWORK_ERROR)
    return RecognizerInvocationError(message, code=ASR_PROTOCOL_ERROR)


class WhisperPipelineRecognizer:
    def __init__(
        self,
        model_size: str = "base",
        sample_rate: int = 16000,
        device: Optional[str] = None,
    ) -> None:
        self.model_size = model_size
        self.sample_rate = sample_rate
        self._device = device
        self._pipe: Any = None
        self._load_lock = threading.Lock()

    @property
    def model_name(self) -> str:
        if "/" in self.model_size:
            return self.model_size
        return f"openai/whisper-{self.model_size}"

    def is_ready(self) -> bool:
        return self._pipe is not None

    def load(self) -> None:
        with self._load_lock:
            if self._pipe is not None:
                return
            if hf_pipeline is None:
                raise RecognizerInvocationError(
                    "transformers is not installed", code=RECOGNIZER_UNAVAILABLE
                )
            try:
                self._pipe = hf_pipeline(
                    "automatic-speech-recognition",
                    model=self.model_name,
                    device=self._device,
                )
            except Exception as exc:
                raise RecognizerInvocationError(
                    f"Failed to initialize Whisper: {exc}", code=RECOGNIZER_UNAVAILABLE
                ) from exc

    def transcribe(self, samples: np.ndarray, options: TranscribeOptions) -> str:
        if self._pipe is None:
            raise RecognizerInvocationError(
                "Whisper model not loaded", code=RECOGNIZER_UNAVAILABLE
            )
        audio = {"raw": np.asarray(samples, dtype=np.float32), "sampling_rate": self.sample_rate}
        try:
            result = self._pipe(
                audio,
                chunk_length_s=options.chunk_length_s,
                stride_length_s=options.stride_length_s,
                return_timestamps=False,
                generate_kwargs={"language": options.language, "task": options.task},
            )
        except Exception as exc:
            raise _to_invocation_error(exc) from exc
        if isinstance(result, dict):
            return str(result.get("text", "")).strip()
        return ""


class DashscopeRecognizer:
    def __init__(
        self,
        api_key: str,
        model: str = "qwen3-asr-flash",
        sample_rate: int = 16000,
        request_timeout_s: float = 10.0,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self.sample_rate = sample_rate
        self._request_timeout_s = request_timeout_s

    def _resolve_api_key(self) -> str:
        return self._api_key or os.getenv("DASHSCOPE_API_KEY", "")

    def is_ready(self) -> bool:
        return dashscope is not None and bool(self._resolve_api_key())

    def transcribe(self, samples: np.ndarray, options: TranscribeOptions) -> str:
        if dashscope is None:
            raise RecognizerInvocationError(
                "dashscope is not installed", code=RECOGNIZER_UNAVAILABLE
            )
        api_key = self._resolve_api_key()
        if not api_key:
            raise RecognizerInvocationError("No API key configured", code=AUTH_FAILED)

        wav_b64 = _pcm_to_wav_base64(_float_to_pcm16(samples), self.sample_rate)
        asr_options = {"enable_itn": False}
        language = LANGUAGE_CODES.get(options.language.lower())
        if language:
            asr_options["language"] = language

        try:
            response = dashscope.MultiModalConversation.call(
                api_key=api_key,
                model=self._model,
                messages=[
                    {"role": "system", "content": [{"text": ""}]},
                    {"role": "user", "content": [{"audio": wav_b64}]},
                ],
                result_format="message",
                asr_options=asr_options,
                stream=True,
                timeout=self._request_timeout_s,
            )
            latest_text = ""
            for chunk in response:
                text = self._extract_text(chunk)
                if text:
                    latest_text = text
        except Exception as exc:
            raise _to_invocation_error(exc) from exc
        return latest_text.strip()

    def _extract_text(self, chunk: object) -> str:
        """Pull text from a dashscope streaming chunk dict."""
        if isinstance(chunk, dict):
            output = chunk.get("output", {})
            choices = output.get("choices", [])
            if not choices:
                return ""
            message = choices[0].get("message", {})
            content = message.get("content", [])
            if not content:
                return ""
            value = content[0]
            if isinstance(value, dict):
                return str(value.get("text", ""))
        return ""


def build_recognizer(
    backend: str, model_size: str, api_key: str, sample_rate: int = 16000
) -> SpeechRecognizer:
    if backend == "dashscope":
        return DashscopeRecognizer(api_key=api_key, sample_rate=sample_rate)
    return WhisperPipelineRecognizer(model_size=model_size, sample_rate=sample_rate)
