"""Clean-up and structural checks for model-generated queries.

Language models wrap queries in markdown fences, lead-ins and trailing
explanations. These helpers strip that noise and run cheap structural
checks before a generated query is offered for execution. Nothing here
talks to a database or a model.

Example:
    >>> sanitize_generated_query("```sql\\nSELECT 1;\\n```", "postgres")
    'SELECT 1;'
"""

import json
import re
from typing import Any, Dict, List, Optional, Union

from ..core.exceptions import ValidationError
from ..database.models import BackendKind

BackendLike = Union[BackendKind, str, None]

READ_KEYWORDS = ("SELECT", "SHOW", "DESCRIBE", "EXPLAIN")
WRITE_KEYWORDS = ("INSERT", "UPDATE", "DELETE")
DDL_KEYWORDS = ("CREATE", "ALTER", "DROP", "TRUNCATE")
DANGEROUS_KEYWORDS = ("DROP", "TRUNCATE", "DELETE")

STATEMENT_KEYWORDS = (
    "SELECT", "INSERT", "UPDATE", "DELETE", "CREATE", "ALTER",
    "DROP", "TRUNCATE", "SHOW", "DESCRIBE", "EXPLAIN", "WITH",
)

_FENCE_PATTERNS = [
    re.compile(r"```(?:sql|mysql|postgresql|json)\n?", re.IGNORECASE),
    re.compile(r"```\n?"),
]

_LEAD_IN_PATTERNS = [
    re.compile(r"^Here(?:'s| is) (?:the |a )?(?:SQL |MongoDB )?query[:\s]*", re.IGNORECASE),
    re.compile(r"^The (?:SQL |MongoDB )?query (?:is|would be)[:\s]*", re.IGNORECASE),
    re.compile(r"^Query[:\s]*", re.IGNORECASE),
    re.compile(r"^SQL[:\s]*", re.IGNORECASE),
    re.compile(r"^Result[:\s]*", re.IGNORECASE),
]

_TRAILER_PATTERNS = [
    re.compile(r"\n\nThis query.*", re.IGNORECASE | re.DOTALL),
    re.compile(r"\n\nNote:.*", re.IGNORECASE | re.DOTALL),
    re.compile(r"\n\nExplanation:.*", re.IGNORECASE | re.DOTALL),
    re.compile(r"\n\n\*\*.*", re.IGNORECASE | re.DOTALL),
]

_TRAILING_SEMICOLONS = re.compile(r";+$")


def is_document_backend(backend: BackendLike) -> bool:
    """True if ``backend`` names MongoDB; unknown names count as SQL."""
    if backend is None:
        return False
    try:
        return BackendKind.resolve(backend, "") is BackendKind.MONGODB
    except ValidationError:
        return False


def sanitize_generated_query(text: Optional[str], backend: BackendLike = BackendKind.POSTGRES) -> str:
    """Strip markdown and prose surrounding a generated query.

    Args:
        text: Raw model output
        backend: Target backend; MongoDB output also loses trailing semicolons

    Returns:
        The bare query text (empty string for empty input)
    """
    if not text:
        return ""

    cleaned = text.strip()
    for pattern in _FENCE_PATTERNS:
        cleaned = pattern.sub("", cleaned)
    for pattern in _LEAD_IN_PATTERNS:
        cleaned = pattern.sub("", cleaned)
    for pattern in _TRAILER_PATTERNS:
        cleaned = pattern.sub("", cleaned)

    cleaned = cleaned.strip()
    if is_document_backend(backend):
        cleaned = _TRAILING_SEMICOLONS.sub("", cleaned)
    return cleaned


def check_generated_query(text: Optional[str], backend: BackendLike = BackendKind.POSTGRES) -> Dict[str, Any]:
    """Run structural checks on a generated query.

    These are heuristics, not a parser: a query that passes may still be
    rejected by the database.

    Args:
        text: Sanitized query text
        backend: Target backend

    Returns:
        ``{"is_valid": bool, "errors": [...], "warnings": [...]}``
    """
    errors: List[str] = []
    warnings: List[str] = []

    if not text or not text.strip():
        errors.append("Query is empty")
        return {"is_valid": False, "errors": errors, "warnings": warnings}

    if is_document_backend(backend):
        _check_document_query(text, errors, warnings)
    else:
        _check_sql_query(text, errors, warnings)

    return {"is_valid": not errors, "errors": errors, "warnings": warnings}


def _check_document_query(text: str, errors: List[str], warnings: List[str]) -> None:
    try:
        parsed = json.loads(text)
    except ValueError:
        errors.append("Invalid MongoDB query format: Expected JSON")
        return

    if not isinstance(parsed, dict):
        errors.append("Invalid MongoDB query format: Expected a JSON object")
        return
    if not parsed.get("collection"):
        warnings.append("No collection specified")
    if not parsed.get("operation"):
        warnings.append('No operation specified, defaulting to "find"')


def _check_sql_query(text: str, errors: List[str], warnings: List[str]) -> None:
    upper = text.strip().upper()

    if not upper.startswith(STATEMENT_KEYWORDS):
        errors.append("Query does not appear to be valid SQL")
    if text.count("'") % 2:
        errors.append("Unclosed single quote detected")
    if text.count('"') % 2:
        errors.append("Unclosed double quote detected")
    if text.count("(") != text.count(")"):
        errors.append("Unbalanced parentheses detected")

    if "SELECT *" in upper and "LIMIT" not in upper and "TOP" not in upper:
        warnings.append("SELECT * without LIMIT may return large result sets")


def _contains_word(text: str, word: str) -> bool:
    return re.search(rf"\b{word}\b", text) is not None


def analyze_query(text: Optional[str]) -> Dict[str, Any]:
    """Classify a SQL statement and flag destructive ones.

    A query is dangerous when DROP, TRUNCATE or DELETE appears as a whole
    word anywhere in it; dangerous queries require confirmation before
    they are run.

    Args:
        text: SQL text

    Returns:
        ``{"type", "is_dangerous", "requires_confirmation", "keywords"}``
        where ``type`` is one of read, write, ddl or unknown
    """
    if not text:
        return {
            "type": "unknown",
            "is_dangerous": False,
            "requires_confirmation": False,
            "keywords": {"is_read": False, "is_write": False, "is_ddl": False, "is_dangerous": False},
        }

    upper = text.strip().upper()
    is_dangerous = any(_contains_word(upper, keyword) for keyword in DANGEROUS_KEYWORDS)
    is_read = upper.startswith(READ_KEYWORDS)
    is_write = upper.startswith(WRITE_KEYWORDS)
    is_ddl = upper.startswith(DDL_KEYWORDS)

    if is_read:
        query_type = "read"
    elif is_write:
        query_type = "write"
    elif is_ddl:
        query_type = "ddl"
    else:
        query_type = "unknown"

    return {
        "type": query_type,
        "is_dangerous": is_dangerous,
        "requires_confirmation": is_dangerous,
        "keywords": {
            "is_read": is_read,
            "is_write": is_write,
            "is_ddl": is_ddl,
            "is_dangerous": is_dangerous,
        },
    }
