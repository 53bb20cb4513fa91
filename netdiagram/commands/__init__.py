"""Diagram commands and their orchestration."""

from .models import Command, CommandResult, ParentInput
from .orchestrator import CommandOrchestrator

__all__ = ["Command", "CommandResult", "ParentInput", "CommandOrchestrator"]
