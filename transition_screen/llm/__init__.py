"""
LLM access layer: provider gateway, versioned prompts and output parsing.
"""

from .llm_client import GatewayResponse, ProviderConfig, ProviderGateway
from .prompt_loader import PromptInfo, load_prompt
from .response_parser import ResponseParseError, parse_model_output

__all__ = [
    "GatewayResponse",
    "PromptInfo",
    "ProviderConfig",
    "ProviderGateway",
    "ResponseParseError",
    "load_prompt",
    "parse_model_output",
]
