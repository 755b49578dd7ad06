"""Model-free helpers for AI query generation.

Schema and conversation prompt blocks, plus clean-up and structural checks
for queries a language model produced.
"""

from .context import build_conversation_context, build_schema_context, generate_query_suggestions
from .sanitize import analyze_query, check_generated_query, sanitize_generated_query

__all__ = [
    "analyze_query",
    "build_conversation_context",
    "build_schema_context",
    "check_generated_query",
    "generate_query_suggestions",
    "sanitize_generated_query",
]
