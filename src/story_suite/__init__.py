"""Turn web article URLs into structured story summaries with an OpenAI model."""

__all__ = ["config", "models", "pipeline"]
