from .main import MAX_HISTORY, HistoryTracker, record_history

__all__ = ["MAX_HISTORY", "HistoryTracker", "record_history"]
