"""Application runtime package."""

from synapsebot.app.runtime import AppRuntime

__all__ = ["AppRuntime"]
