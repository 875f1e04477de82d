"""
Recorder module for playcheck.

Turns the player's and the renderers' activity into one ordered,
serializable playback output.
"""

from playcheck.recorder.dump_format import (
    DUMP_HEADER,
    DumpFormatError,
    OutputRecord,
    parse_dump,
    render_dump,
)
from playcheck.recorder.playback_output import PlaybackOutput, PlaybackOutputRecorder

__all__ = [
    "DUMP_HEADER",
    "DumpFormatError",
    "OutputRecord",
    "PlaybackOutput",
    "PlaybackOutputRecorder",
    "parse_dump",
    "render_dump",
]
