"""Configuration for MSCD."""
