"""Weekly planner: recurring activity resolution and conflict detection."""

__version__ = "0.1.0"
