"""
Noise-reduction filter chain composition.

Everything here is pure: the same inputs always yield the same chain and
nothing touches the filesystem. Chains render to ffmpeg filter-graph syntax
with ``render_filter_graph``.
"""

from __future__ import annotations

from scriptvoice.shared.enums import DenoiseLevel, NoiseType
from scriptvoice.shared.models import FilterStage


def _stage(name: str, **params: str) -> FilterStage:
    return FilterStage(name=name, params=params)


# Speed/tone normalization applied to every synthesized chunk so chunks
# generated by separate requests sound alike once joined.
NORMALIZATION_CHAIN: tuple[FilterStage, ...] = (
    _stage("atempo", tempo="0.95"),
    _stage("dynaudnorm", f="75", g="3", p="0.9", s="5"),
    _stage("highpass", f="80"),
    _stage("lowpass", f="12000"),
)


def _breath_stages(level: DenoiseLevel) -> list[FilterStage]:
    stages = [
        # Breath sits roughly between -40 dB and -30 dB.
        _stage("agate", threshold="-35dB", ratio="10", attack="10", release="100", makeup="2"),
        _stage("highpass", f="120", poles="2"),
        _stage("afftdn", nf="-25", tn="1", om="o"),
        _stage(
            "silenceremove",
            start_periods="1",
            start_duration="0.1",
            start_threshold="-40dB",
            detection="peak",
        ),
        _stage("lowpass", f="8000", poles="2"),
    ]
    if level in (DenoiseLevel.STRONG, DenoiseLevel.AUTO):
        stages.append(_stage("afftdn", nf="-30", tn="1"))
        stages.append(
            _stage("silenceremove", stop_periods="-1", stop_duration="0.2", stop_threshold="-45dB")
        )
    return stages


def _general_stages(level: DenoiseLevel, noise_type: NoiseType) -> list[FilterStage]:
    stages: list[FilterStage] = []
    if level == DenoiseLevel.LIGHT:
        stages.append(_stage("afftdn", nf="-20", tn="1"))
        if noise_type == NoiseType.BACKGROUND_HUM:
            stages.append(_stage("highpass", f="80"))
    elif level == DenoiseLevel.MEDIUM:
        stages.append(_stage("afftdn", nf="-25", tn="1"))
        stages.append(_stage("highpass", f="100"))
        stages.append(_stage("lowpass", f="8000"))
        if noise_type in (NoiseType.CLICK_POP, NoiseType.MIXED):
            stages.append(_stage("adeclick", t="1"))
            stages.append(_stage("adeclip"))
    elif level == DenoiseLevel.STRONG:
        stages.append(_stage("afftdn", nf="-30", tn="1"))
        stages.append(_stage("highpass", f="120"))
        stages.append(_stage("lowpass", f="7000"))
        stages.append(_stage("anlmdn", s="0.001", p="0.002", r="0.002", m="15"))
        stages.append(_stage("adeclick", t="1"))
        stages.append(_stage("adeclip"))
        if noise_type == NoiseType.WHITE_NOISE:
            stages.append(_stage("highpass", f="150"))
    else:
        raise ValueError(f"Denoise level '{level.value}' must be resolved before composing filters")
    return stages


def _finishing_stages(preserve_quality: bool) -> list[FilterStage]:
    if preserve_quality:
        return [
            _stage("acompressor", threshold="-18dB", ratio="3", attack="20", release="250"),
            _stage("equalizer", f="3000", t="h", width="1000", g="2"),
        ]
    return [_stage("loudnorm", I="-16", TP="-1.5", LRA="11")]


def compose_denoise_chain(
    level: DenoiseLevel,
    noise_type: NoiseType,
    preserve_quality: bool,
) -> list[FilterStage]:
    """
    Build the noise-reduction chain for a treatment level and noise category.

    Args:
        level: Treatment level. ``none`` yields an empty chain (copy without
            transcoding). ``auto`` is only meaningful for breath removal, where
            it means strong; other categories need a resolved level.
        noise_type: Dominant noise category
        preserve_quality: Finish with gentle compression and a presence boost
            instead of loudness normalization

    Returns:
        Ordered filter stages
    """
    if level == DenoiseLevel.NONE:
        return []

    if noise_type == NoiseType.BREATH:
        stages = _breath_stages(level)
    else:
        stages = _general_stages(level, noise_type)

    return stages + _finishing_stages(preserve_quality)


def render_filter_graph(chain: list[FilterStage] | tuple[FilterStage, ...]) -> str:
    """Render a chain as an ffmpeg ``-af`` argument."""
    return ",".join(stage.render() for stage in chain)
