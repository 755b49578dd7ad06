"""Request bodies accepted by the HTTP API.

Field names follow the camelCase wire format; Python code uses the
snake_case attribute names.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ConnectionRequest(BaseModel):
    """Body of ``/api/test-connection`` and ``/api/schema``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    connection_string: Optional[str] = Field(None, alias="connectionString")
    db_type: Optional[str] = Field(None, alias="dbType")


class QueryRequest(ConnectionRequest):
    """Body of ``/api/query``.

    ``query`` is SQL text or a MongoDB JSON document serialized as a string;
    its type is checked by the normalizer, not here.
    """

    query: Any = None
