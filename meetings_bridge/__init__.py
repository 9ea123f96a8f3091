"""Meetings Bridge - a small FastAPI backend between a SPA and Google Calendar."""

__version__ = "1.0.0"
