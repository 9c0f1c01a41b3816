"""claude-local: run Claude Code against a local Ollama model via a translation proxy."""

__version__ = "0.3.0"
