"""Tests for the recognizer backends."""

from __future__ import annotations

import base64
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from errors import ASR_PROTOCOL_ERROR, AUTH_FAILED, NETWORK_ERROR, RECOGNIZER_UNAVAILABLE, RecognizerInvocationError
from models import TranscribeOptions
from recognizer import (
    DashscopeRecognizer,
    WhisperPipelineRecognizer,
    _float_to_pcm16,
    _pcm_to_wav_base64,
    build_recognizer,
)

OPTIONS = TranscribeOptions()


def _silence(n_samples: int = 16000) -> np.ndarray:
    return np.zeros(n_samples, dtype=np.float32)


# ---------------------------------------------------------------
# PCM helpers
# ---------------------------------------------------------------

def test_pcm_to_wav_base64_produces_valid_base64() -> None:
    result = _pcm_to_wav_base64(b"\x00\x00" * 1600, sample_rate=16000, channels=1)
    decoded = base64.b64decode(result)
    assert decoded[:4] == b"RIFF"


def test_float_to_pcm16_clips_out_of_range_samples() -> None:
    pcm = _float_to_pcm16(np.array([2.0, -2.0, 0.0], dtype=np.float32))
    values = np.frombuffer(pcm, dtype="<i2")
    assert values.tolist() == [32767, -32767, 0]


# ---------------------------------------------------------------
# Local Whisper pipeline
# ---------------------------------------------------------------

def test_whisper_not_ready_until_loaded() -> None:
    recognizer = WhisperPipelineRecognizer(model_size="tiny")
    assert recognizer.is_ready() is False
    with pytest.raises(RecognizerInvocationError) as info:
        recognizer.transcribe(_silence(), OPTIONS)
    assert info.value.code == RECOGNIZER_UNAVAILABLE


@patch("recognizer.hf_pipeline")
def test_whisper_passes_fixed_options(mock_pipeline: MagicMock) -> None:
    pipe = MagicMock(return_value={"text": "  hello there  "})
    mock_pipeline.return_value = pipe

    recognizer = WhisperPipelineRecognizer(model_size="base")
    recognizer.load()
    text = recognizer.transcribe(_silence(), OPTIONS)

    assert recognizer.is_ready() is True
    assert text == "hello there"
    assert mock_pipeline.call_args.kwargs["model"] == "openai/whisper-base"
    kwargs = pipe.call_args.kwargs
    assert kwargs["chunk_length_s"] == 30
    assert kwargs["stride_length_s"] == 5
    assert kwargs["generate_kwargs"] == {"language": "english", "task": "transcribe"}
    audio = pipe.call_args.args[0]
    assert audio["sampling_rate"] == 16000


@patch("recognizer.hf_pipeline")
def test_whisper_inference_error_is_wrapped(mock_pipeline: MagicMock) -> None:
    mock_pipeline.return_value = MagicMock(side_effect=RuntimeError("CUDA out of memory"))

    recognizer = WhisperPipelineRecognizer()
    recognizer.load()
    with pytest.raises(RecognizerInvocationError) as info:
        recognizer.transcribe(_silence(), OPTIONS)
    assert info.value.code == ASR_PROTOCOL_ERROR


@patch("recognizer.hf_pipeline", None)
def test_whisper_load_without_transformers() -> None:
    with pytest.raises(RecognizerInvocationError, match="not installed"):
        WhisperPipelineRecognizer().load()


def test_model_name_accepts_full_repo_id() -> None:
    assert WhisperPipelineRecognizer(model_size="distil-whisper/distil-small.en").model_name == (
        "distil-whisper/distil-small.en"
    )


# ---------------------------------------------------------------
# DashScope
# ---------------------------------------------------------------

def _fake_streaming_response():
    yield {"output": {"choices": [{"message": {"content": [{"text": "hello"}]}}]}}
    yield {"output": {"choices": [{"message": {"content": [{"text": "hello world"}]}}]}}
    yield {"output": {"choices": []}}


@patch("recognizer.dashscope")
def test_dashscope_returns_latest_streamed_text(mock_ds: MagicMock) -> None:
    mock_ds.MultiModalConversation.call.return_value = _fake_streaming_response()

    recognizer = DashscopeRecognizer(api_key="test-key")
    text = recognizer.transcribe(_silence(), OPTIONS)

    assert text == "hello world"
    kwargs = mock_ds.MultiModalConversation.call.call_args.kwargs
    assert kwargs["asr_options"] == {"enable_itn": False, "language": "en"}
    assert kwargs["stream"] is True


@patch("recognizer.dashscope", MagicMock())
@patch.dict("os.environ", {"DASHSCOPE_API_KEY": ""}, clear=False)
def test_dashscope_missing_api_key() -> None:
    recognizer = DashscopeRecognizer(api_key="")
    assert recognizer.is_ready() is False
    with pytest.raises(RecognizerInvocationError) as info:
        recognizer.transcribe(_silence(), OPTIONS)
    assert info.value.code == AUTH_FAILED


@patch("recognizer.dashscope")
def test_network_error_maps_correctly(mock_ds: MagicMock) -> None:
    mock_ds.MultiModalConversation.call.side_effect = ConnectionError("network timeout")

    with pytest.raises(RecognizerInvocationError) as info:
        DashscopeRecognizer(api_key="test-key").transcribe(_silence(), OPTIONS)
    assert info.value.code == NETWORK_ERROR


@patch("recognizer.dashscope")
def test_auth_error_maps_correctly(mock_ds: MagicMock) -> None:
    mock_ds.MultiModalConversation.call.side_effect = Exception("401 Unauthorized: invalid api key")

    with pytest.raises(RecognizerInvocationError) as info:
        DashscopeRecognizer(api_key="bad-key").transcribe(_silence(), OPTIONS)
    assert info.value.code == AUTH_FAILED


@patch("recognizer.dashscope", None)
def test_dashscope_not_installed() -> None:
    recognizer = DashscopeRecognizer(api_key="test-key")
    assert recognizer.is_ready() is False
    with pytest.raises(RecognizerInvocationError, match="not installed"):
        recognizer.transcribe(_silence(), OPTIONS)


def test_build_recognizer_selects_backend() -> None:
    assert isinstance(build_recognizer("dashscope", "base", "key"), DashscopeRecognizer)
    local = build_recognizer("local", "small", "")
    assert isinstance(local, WhisperPipelineRecognizer)
    assert local.model_size == "small"
