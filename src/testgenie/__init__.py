"""testgenie: find untested JavaScript/TypeScript code and prepare it for test generation."""

__version__ = "0.3.0"
