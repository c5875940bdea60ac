"""Orchestrator package - sequences a quota-gated backup run."""
from .core import BackupOrchestrator, Evaluation
from .gate import decide

__all__ = ["BackupOrchestrator", "Evaluation", "decide"]
