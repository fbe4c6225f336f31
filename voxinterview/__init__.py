"""
voxinterview: spoken mock interviews with AI-generated questions and feedback.

Questions are generated for a role, spoken aloud with synthesized speech, the
candidate's answers are recorded turn by turn, and afterwards the session is
transcribed and scored for delivery and content.
"""

__version__ = "1.0.0"

# Main entry points
from .interview.session_setup import InterviewSessionRunner, SessionConfigResolver, SetupError
from .interview.state_machine import TurnStateMachine
from .interview.analysis import AnalysisPipeline
from .interview.schemas import InterviewConfig
from .interview.models import InterviewSession, SessionOutcome

__all__ = [
    "InterviewSessionRunner", "SessionConfigResolver", "SetupError",
    "TurnStateMachine", "AnalysisPipeline", "InterviewConfig",
    "InterviewSession", "SessionOutcome",
]
