"""Render themed, coloured shell prompts from a block and segment configuration."""

__version__ = "0.1.0"