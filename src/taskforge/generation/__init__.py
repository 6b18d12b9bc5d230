"""Generation module for AI-driven task breakdowns.

This module provides tools to:
- Build the breakdown prompt (prompts.py)
- Call the hosted text model (client.py)
- Parse and validate model output (parser.py)
- Run the whole generation step (breakdown.py)
"""

from .prompts import build_breakdown_prompt, validate_request, CHAT_SYSTEM_PROMPT
from .client import OpenRouterClient
from .parser import parse_response, extract_json_array, decode_task_array
from .breakdown import TaskBreakdownGenerator, GeneratedBreakdown

__all__ = [
    "build_breakdown_prompt",
    "validate_request",
    "CHAT_SYSTEM_PROMPT",
    "OpenRouterClient",
    "parse_response",
    "extract_json_array",
    "decode_task_array",
    "TaskBreakdownGenerator",
    "GeneratedBreakdown",
]
