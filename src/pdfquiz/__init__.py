"""PDF ingestion and page-cited retrieval for the quiz/chat assistant."""

__version__ = "0.1.0"
