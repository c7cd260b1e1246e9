"""PrepBuddy - interview practice with spoken answers and model feedback."""

__version__ = "0.1.0"
