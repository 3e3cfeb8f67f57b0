"""MAKER — reliable answers from unreliable models via decomposition and voting."""

__version__ = "0.1.0"

from .consensus import RedFlagFilter, VotingEngine, normalize_answer
from .decomposer import Decomposer
from .events import EventType, MakerEvent, MakerEventEmitter
from .orchestrator import Maker
from .providers import Oracle, create_provider, load_maker_config
from .schemas import (
    ConfidenceLevel,
    DecompositionConfig,
    MakerConfig,
    MakerResult,
    RedFlagConfig,
    SynthesisConfig,
    VotingConfig,
)
from .synthesizer import Synthesizer

__all__ = [
    "ConfidenceLevel",
    "Decomposer",
    "DecompositionConfig",
    "EventType",
    "Maker",
    "MakerConfig",
    "MakerEvent",
    "MakerEventEmitter",
    "MakerResult",
    "Oracle",
    "RedFlagConfig",
    "RedFlagFilter",
    "SynthesisConfig",
    "Synthesizer",
    "VotingConfig",
    "VotingEngine",
    "create_provider",
    "load_maker_config",
    "normalize_answer",
]
