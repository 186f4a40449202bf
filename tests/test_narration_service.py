"""End-to-end tests for the narration orchestrator with in-process fakes."""

import json
from unittest.mock import AsyncMock

import pytest

from scriptvoice.services.narration import NarrationOrchestrator
from scriptvoice.services.narration import orchestrator as orchestrator_module
from scriptvoice.services.tts_service.drivers.base import SpeechServiceError
from scriptvoice.services.tts_service.drivers.gemini import GeminiSpeechEngine
from scriptvoice.services.tts_service.service import SpeechSynthesisClient
from scriptvoice.services.audio_processing.service import AudioProcessor
from scriptvoice.shared.enums import DenoiseLevel, PipelineStatus, SectionType
from scriptvoice.shared.exceptions import ConfigurationError, SynthesisError
from scriptvoice.shared.models import DenoiseConfig, ScriptInput, Section


def _listing(directory) -> list[str]:
    return sorted(path.name for path in directory.iterdir())


def _script(*sections: Section) -> ScriptInput:
    return ScriptInput(title="Demo", sections=list(sections))


@pytest.fixture
def orchestrator(narration_settings, synthesizer, audio_processor, dictionary_manager):
    return NarrationOrchestrator(
        narration_settings,
        synthesizer=synthesizer,
        audio_processor=audio_processor,
        dictionary_manager=dictionary_manager,
    )


@pytest.mark.asyncio
async def test_long_section_becomes_three_chunks_and_one_file(
    orchestrator, narration_settings, scripted_engine, fake_transform
):
    narration = ("あ" * 99 + "。") * 24
    script = _script(Section(narration=narration))

    result = await orchestrator.generate(script)

    assert len(narration) == 2400
    assert result.status == PipelineStatus.SUCCESS
    assert len(scripted_engine.requests) == 3
    assert fake_transform.operations() == ["decode", "filter"] * 3 + ["concatenate"]
    assert _listing(narration_settings.output_dir) == ["section_01.mp3"]
    output = (narration_settings.output_dir / "section_01.mp3").read_bytes()
    assert output == (b"\x01\x00" * 8 + fake_transform.MARKER) * 3
    assert result.files == ["section_01.mp3"]


@pytest.mark.asyncio
async def test_failed_section_does_not_stop_the_run(
    narration_settings, audio_processor, dictionary_manager, make_engine
):
    engine = make_engine(fail_when="broken", error=SpeechServiceError("500 INTERNAL", status_code=500))
    orchestrator = NarrationOrchestrator(
        narration_settings,
        synthesizer=SpeechSynthesisClient(engine, max_attempts=3, base_delay=0),
        audio_processor=audio_processor,
        dictionary_manager=dictionary_manager,
    )
    script = _script(
        Section(title="One", narration="First section."),
        Section(title="Two", narration="This one is broken."),
        Section(title="Three", narration="Third section."),
    )

    result = await orchestrator.generate(script)

    assert result.metrics.total_sections == 3
    assert result.metrics.success_count == 2
    assert result.metrics.failure_count == 1
    assert result.status != PipelineStatus.SUCCESS
    assert [section.success for section in result.sections] == [True, False, True]
    assert "synthesize" in result.sections[1].error
    assert len(engine.requests) == 5
    assert _listing(narration_settings.output_dir) == ["section_01_One.mp3", "section_03_Three.mp3"]


@pytest.mark.asyncio
async def test_non_narratable_and_empty_sections_are_skipped(orchestrator, scripted_engine):
    script = _script(
        Section(type=SectionType.TITLE, title="Welcome"),
        Section(title="Body", narration="Real content."),
        Section(type=SectionType.SECTION_DIVIDER, title="Part 2"),
        Section(type=SectionType.CONTENT),
    )

    result = await orchestrator.generate(script)

    assert result.metrics.total_sections == 4
    assert result.metrics.skipped_count == 3
    assert result.metrics.success_count == 1
    assert [section.section_index for section in result.sections] == [1]
    assert scripted_engine.requests[0][0] == "Body\n\nReal content."


@pytest.mark.asyncio
async def test_waits_between_synthesis_calls(narration_settings, synthesizer, audio_processor, monkeypatch):
    sleep_mock = AsyncMock()
    monkeypatch.setattr(orchestrator_module.asyncio, "sleep", sleep_mock)
    settings = narration_settings.model_copy(update={"rate_limit_seconds": 2.0})
    orchestrator = NarrationOrchestrator(settings, synthesizer=synthesizer, audio_processor=audio_processor)
    script = _script(Section(narration="First."), Section(narration="Second."), Section(narration="Third."))

    await orchestrator.generate(script)

    assert [call.args[0] for call in sleep_mock.await_args_list] == [2.0, 2.0]


@pytest.mark.asyncio
async def test_overrides_apply_to_one_run_only(orchestrator, narration_settings, scripted_engine):
    await orchestrator.generate(_script(Section(narration="Hello.")), voice="Kore", model="custom-tts")
    await orchestrator.generate(_script(Section(narration="Hello again.")))

    assert scripted_engine.requests[0][1:] == ("Kore", "custom-tts")
    assert scripted_engine.requests[1][1:] == ("Puck", "gemini-2.5-flash-preview-tts")
    assert orchestrator.settings == narration_settings


@pytest.mark.asyncio
async def test_dictionary_applied_before_synthesis(orchestrator, narration_settings, scripted_engine):
    narration_settings.dictionary_path.write_text(
        json.dumps({"replacements": {"ChatGPT": "チャットジーピーティー"}}, ensure_ascii=False),
        encoding="utf-8",
    )

    await orchestrator.generate(_script(Section(narration="chatgptです")))

    assert scripted_engine.requests[0][0] == "チャットジーピーティーです"


@pytest.mark.asyncio
async def test_denoise_runs_before_normalization(orchestrator, narration_settings, fake_transform):
    result = await orchestrator.generate(_script(Section(narration="Noisy take.")), enable_denoise=True)

    assert result.status == PipelineStatus.SUCCESS
    assert fake_transform.operations() == ["decode", "statistics", "filter", "filter"]
    denoise_graph = fake_transform.calls[2][1]["filter_graph"]
    assert denoise_graph.startswith("agate=")
    assert _listing(narration_settings.output_dir) == ["section_01.mp3"]


@pytest.mark.asyncio
async def test_explicit_denoise_config_override(orchestrator, fake_transform):
    await orchestrator.generate(
        _script(Section(narration="Noisy take.")),
        enable_denoise=True,
        denoise=DenoiseConfig(level=DenoiseLevel.NONE),
    )

    assert fake_transform.operations() == ["decode", "filter"]


@pytest.mark.parametrize("failing_operation", ["decode", "filter", "concatenate"])
@pytest.mark.asyncio
async def test_audio_failure_leaves_no_temporary_files(
    narration_settings, synthesizer, make_transform, failing_operation
):
    settings = narration_settings.model_copy(update={"max_chunk_chars": 20})
    orchestrator = NarrationOrchestrator(
        settings,
        synthesizer=synthesizer,
        audio_processor=AudioProcessor(make_transform(fail_on={failing_operation})),
    )

    result = await orchestrator.generate(
        _script(Section(narration="First sentence here. Second sentence here."))
    )

    assert result.metrics.failure_count == 1
    assert result.status == PipelineStatus.ERROR
    assert _listing(settings.output_dir) == []


@pytest.mark.asyncio
async def test_missing_credentials_abort_before_work(narration_settings, audio_processor, tmp_path):
    settings = narration_settings.model_copy(
        update={"gemini_api_key": None, "output_dir": tmp_path / "never-created"}
    )
    orchestrator = NarrationOrchestrator(settings, audio_processor=audio_processor)

    with pytest.raises(ConfigurationError):
        await orchestrator.generate(_script(Section(narration="Hello.")))

    assert not (tmp_path / "never-created").exists()


def test_synthesizer_built_lazily_from_settings(narration_settings):
    orchestrator = NarrationOrchestrator(narration_settings)

    synthesizer = orchestrator.synthesizer

    assert isinstance(synthesizer, SpeechSynthesisClient)
    assert isinstance(synthesizer.engine, GeminiSpeechEngine)
    assert synthesizer.max_attempts == narration_settings.max_attempts
    del orchestrator.synthesizer
    assert orchestrator.synthesizer is not synthesizer


class TestGenerateFromText:
    @pytest.mark.asyncio
    async def test_writes_single_file(self, orchestrator, narration_settings):
        path = await orchestrator.generate_from_text("Just one line.", filename="intro.mp3")

        assert path == narration_settings.output_dir / "intro.mp3"
        assert _listing(narration_settings.output_dir) == ["intro.mp3"]

    @pytest.mark.asyncio
    async def test_failure_raises(self, narration_settings, audio_processor, make_engine):
        engine = make_engine(fail_when="text", error=SpeechServiceError("bad request", status_code=400))
        orchestrator = NarrationOrchestrator(
            narration_settings,
            synthesizer=SpeechSynthesisClient(engine, base_delay=0),
            audio_processor=audio_processor,
        )

        with pytest.raises(SynthesisError):
            await orchestrator.generate_from_text("Some text.")

        assert _listing(narration_settings.output_dir) == []

    @pytest.mark.asyncio
    async def test_empty_text_rejected(self, orchestrator):
        with pytest.raises(ValueError):
            await orchestrator.generate_from_text("   ")


def test_collaborator_annotations_resolve():
    import typing

    from scriptvoice.shared.models import ReplacementDictionary

    hints = typing.get_type_hints(
        NarrationOrchestrator.__init__,
        localns={"SpeechSynthesisClient": SpeechSynthesisClient, "AudioProcessor": AudioProcessor},
    )
    assert hints["synthesizer"] == SpeechSynthesisClient | None
    assert hints["audio_processor"] == AudioProcessor | None

    narrate_hints = typing.get_type_hints(
        NarrationOrchestrator._narrate_text,
        localns={"SpeechSynthesisClient": SpeechSynthesisClient},
    )
    assert narrate_hints["dictionary"] == ReplacementDictionary | None
