"""
QuizCraft: question set discovery, loading, quiz sessions and scoring.
"""

__version__ = "1.0.0"
