from beatcut.render.audio_muxer import AudioMuxer
from beatcut.render.concatenator import Concatenator
from beatcut.render.pipeline import BeatSyncPipeline, PipelineResult, final_output_path
from beatcut.render.segment_renderer import SegmentRenderer, conformant_encode_args

__all__ = [
    "BeatSyncPipeline",
    "PipelineResult",
    "SegmentRenderer",
    "Concatenator",
    "AudioMuxer",
    "conformant_encode_args",
    "final_output_path",
]
