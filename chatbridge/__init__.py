"""
Top-level package for the Google Chat question bot.

This package hosts:
- config loading from .env and config.yaml
- the Google Chat client that watches one space for new messages
- the question processor that asks an LLM provider (OpenAI-compatible or Ollama)
- the dispatcher that picks "?"-prefixed messages out of the event queue
"""
