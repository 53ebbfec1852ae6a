from .notation import DecodeError, decode, encode
from .normalizer import NormalizeError, NormalizeReason, normalize
from .oracle import GeminiOracleClient, OracleConfig, OracleError, OracleErrorKind
from .pieces import Piece, PieceKind, Side
from .position import Position, Square
from .validator import Rule, ValidationViolation, validate
from .workflow import Outcome, RecognitionWorkflow, RetryPolicy, Snapshot, WorkflowState

__all__ = [
    "Position",
    "Square",
    "Piece",
    "PieceKind",
    "Side",
    "encode",
    "decode",
    "DecodeError",
    "validate",
    "Rule",
    "ValidationViolation",
    "normalize",
    "NormalizeError",
    "NormalizeReason",
    "OracleConfig",
    "OracleError",
    "OracleErrorKind",
    "GeminiOracleClient",
    "RecognitionWorkflow",
    "RetryPolicy",
    "Snapshot",
    "WorkflowState",
    "Outcome",
]
