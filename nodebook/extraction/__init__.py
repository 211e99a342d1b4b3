"""Extraction, validation and deduplication of tags from LLM output."""
