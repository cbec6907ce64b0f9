"""Narration service for presentations.

This service covers the spoken side of a deck:
- Speaker notes generation and editing
- Per-slide speech synthesis into stored audio
- Video export built from slides and narration
"""

__version__ = "1.0.0"
