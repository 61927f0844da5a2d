"""AI completion client and response parsing."""

from .client import CompletionClient, parse_json_response, strip_code_fences


__all__ = ["CompletionClient", "parse_json_response", "strip_code_fences"]
