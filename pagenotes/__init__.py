"""Page Notes: durable, relocatable text highlights for HTML pages."""

__version__ = "0.1.0"
