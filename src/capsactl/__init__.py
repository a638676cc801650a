"""capsactl — markdown capsa notes and agent-shared task tracking."""

__version__ = "0.1.0"
