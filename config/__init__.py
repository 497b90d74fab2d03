"""Configuration package for the multi-timer engine.

Provides the configuration models, the YAML configuration loader and the
logging setup shared by the engine and the CLI.
"""
