from .dbm import DatabaseManager

__all__ = ["DatabaseManager"]
