"""HTTP boundary for the agent pipeline orchestrator."""
from backend.server.app import create_app

__all__ = ["create_app"]
