"""Step-through execution visualizer package."""

from .api import (  # noqa: F401
    generate_trace,
    analyze_code,
    explain_code,
    answer_question,
    dump_trace,
    trace_to_json,
    remote_service_from_config,
)
from .patterns import CodePattern, classify_pattern  # noqa: F401
from .playback import PlaybackController, AsyncioScheduler  # noqa: F401
from .session import TraceGenerator, VisualizerSession  # noqa: F401
from .trace_types import ExecutionStep, ExecutionTrace, TraceOrigin  # noqa: F401
