"""GymTap session log: store, undo log and synced persistence."""

__version__ = "0.1.0"

__all__ = ["__version__"]
