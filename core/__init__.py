"""
Core module - Knowledge graph, question generation and mastery tracking.

Components:
    - knowledge_graph: Units, relation graph and global distractor pools
    - unit_editor: Cascading edit operations on a unit
    - distractor_sampler: Unbiased in-unit / cross-unit distractor picks
    - question_synthesizer: One question per kind rule
    - session_composer: Weighted, deduplicated, mastery-aware sessions
    - mastery_tracker: Grading, success counters and the wrong queue
    - quiz_run: Playback with a retry pass for wrong answers
    - quiz_engine: Per-user context tying it all to a store
"""

from .config import QuizConfig
from .errors import (
    QuizError,
    NoCandidates,
    InsufficientContent,
    InvalidSelection,
    UnknownUnit,
    InvalidUnit,
    ConfigError,
    StoreError,
)
from .knowledge_graph import KnowledgeBase, Unit
from .unit_editor import UnitEditor
from .distractor_sampler import DistractorSampler
from .question import Question
from .question_synthesizer import QuestionSynthesizer, RULES
from .session_composer import SessionComposer
from .mastery_tracker import MasteryTracker, ProgressState, SubmissionResult, grade
from .quiz_run import QuizRun
from .quiz_engine import QuizEngine
from .stores import MemoryStore

__all__ = [
    "QuizConfig",
    "QuizError",
    "NoCandidates",
    "InsufficientContent",
    "InvalidSelection",
    "UnknownUnit",
    "InvalidUnit",
    "ConfigError",
    "StoreError",
    "KnowledgeBase",
    "Unit",
    "UnitEditor",
    "DistractorSampler",
    "Question",
    "QuestionSynthesizer",
    "RULES",
    "SessionComposer",
    "MasteryTracker",
    "ProgressState",
    "SubmissionResult",
    "grade",
    "QuizRun",
    "QuizEngine",
    "MemoryStore",
]
