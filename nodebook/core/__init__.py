"""Configuration and application coordination."""
