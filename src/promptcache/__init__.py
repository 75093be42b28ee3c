"""PromptCache - semantic response cache for LLM chat APIs."""

__version__ = "1.0.0"
