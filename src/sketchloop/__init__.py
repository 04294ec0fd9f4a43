"""sketchloop - streaming turn engine for a design agent."""

from .engine.cancellation import CancellationSignal
from .engine.context import ExecutionContext
from .engine.orchestrator import TurnOrchestrator
from .engine.reducer import StreamReducer
from .transcript import Transcript, Turn

__version__ = "0.1.0"

__all__ = [
    "CancellationSignal",
    "ExecutionContext",
    "StreamReducer",
    "Transcript",
    "Turn",
    "TurnOrchestrator",
]
