"""
Pipeline components for video moderation.

Frame extraction, classification dispatch, verdict aggregation and
disposition, sequenced by the orchestrator.
"""

__all__ = ["dispatch", "disposition", "extraction", "orchestrator", "scratch", "verdict"]
