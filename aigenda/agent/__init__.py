"""Agentic tool-calling loop."""

from aigenda.agent.core import Agent

__all__ = ["Agent"]
