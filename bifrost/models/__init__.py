"""Configuration model."""
