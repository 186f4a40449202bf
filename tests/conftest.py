import shutil
import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from scriptvoice.services.audio_processing.service import AudioProcessor
from scriptvoice.services.audio_processing.transform import AudioToolError, AudioTransform
from scriptvoice.services.text_processing import DictionaryManager
from scriptvoice.services.tts_service.drivers.base import SpeechEngine, SpeechServiceError
from scriptvoice.services.tts_service.service import SpeechSynthesisClient
from scriptvoice.shared.config import NarrationSettings

QUIET_ASTATS_REPORT = """
[Parsed_astats_0 @ 0x1] Channel: 1
[Parsed_astats_0 @ 0x1] RMS level dB: -20.000000
[Parsed_astats_0 @ 0x1] Peak level dB: -15.000000
[Parsed_astats_0 @ 0x1] Overall
[Parsed_astats_0 @ 0x1] RMS level dB: -20.000000
[Parsed_astats_0 @ 0x1] Peak level dB: -15.000000
"""


class FakeTransform(AudioTransform):
    """In-process transform that writes real files and records every call."""

    MARKER = b"|filtered"

    def __init__(self, fail_on: set[str] | None = None, statistics: str = QUIET_ASTATS_REPORT):
        self.fail_on = fail_on or set()
        self.statistics = statistics
        self.calls: list[tuple[str, dict]] = []

    def _check(self, operation: str, **details) -> None:
        self.calls.append((operation, details))
        if operation in self.fail_on:
            raise AudioToolError(f"{operation} failed", returncode=1, stderr=f"{operation}: simulated error")

    def operations(self) -> list[str]:
        return [operation for operation, _ in self.calls]

    async def decode_pcm(self, pcm_path, destination, sample_rate, channels, bitrate):
        self._check("decode", source=pcm_path, destination=destination, sample_rate=sample_rate)
        Path(destination).write_bytes(Path(pcm_path).read_bytes())

    async def apply_filters(self, source, filter_graph, destination, sample_rate, channels, bitrate):
        self._check(
            "filter",
            source=source,
            destination=destination,
            filter_graph=filter_graph,
            sample_rate=sample_rate,
        )
        Path(destination).write_bytes(Path(source).read_bytes() + self.MARKER)

    async def concatenate(self, manifest, destination):
        sources = self.read_manifest(Path(manifest))
        self._check("concatenate", sources=sources, destination=destination)
        with open(destination, "wb") as output:
            for source in sources:
                with open(source, "rb") as chunk:
                    shutil.copyfileobj(chunk, output)

    async def audio_statistics(self, source):
        self._check("statistics", source=source)
        return self.statistics


class ScriptedEngine(SpeechEngine):
    """Speech engine returning canned PCM, or raising for texts that match a trigger."""

    def __init__(self, fail_when: str | None = None, error: Exception | None = None):
        self.fail_when = fail_when
        self.error = error or SpeechServiceError("500 INTERNAL", status_code=500)
        self.requests: list[tuple[str, str, str]] = []

    async def synthesize(self, text: str, voice: str, model: str) -> bytes:
        self.requests.append((text, voice, model))
        if self.fail_when and self.fail_when in text:
            raise self.error
        return b"\x01\x00" * 8


@pytest.fixture
def fake_transform() -> FakeTransform:
    return FakeTransform()


@pytest.fixture
def audio_processor(fake_transform: FakeTransform) -> AudioProcessor:
    return AudioProcessor(fake_transform)


@pytest.fixture
def narration_settings(tmp_path: Path) -> NarrationSettings:
    return NarrationSettings(
        gemini_api_key="test-key",
        output_dir=tmp_path / "narration",
        dictionary_path=tmp_path / "dictionary.json",
        rate_limit_seconds=0,
        retry_base_delay=0,
    )


@pytest.fixture
def scripted_engine() -> ScriptedEngine:
    return ScriptedEngine()


@pytest.fixture
def synthesizer(scripted_engine: ScriptedEngine) -> SpeechSynthesisClient:
    return SpeechSynthesisClient(scripted_engine, max_attempts=3, base_delay=0)


@pytest.fixture
def dictionary_manager(narration_settings: NarrationSettings) -> DictionaryManager:
    return DictionaryManager(narration_settings.dictionary_path)


@pytest.fixture
def make_transform():
    """Factory for transforms with custom failures or statistics output."""
    return FakeTransform


@pytest.fixture
def make_engine():
    return ScriptedEngine
