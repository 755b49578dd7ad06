"""QueryBridge - multi-backend query proxy.

QueryBridge accepts a connection string and a query over HTTP, runs the
query against PostgreSQL, MySQL or MongoDB through a cached connection
pool, and returns one unified result envelope. It can also describe a
database schema in the shape AI query generators expect.

Modules:
    core: Exception taxonomy, utilities and component bases
    config: Configuration management
    logging: Structured logging framework
    database: Connection registry, backend adapters and query service
    api: FastAPI application
    assist: Prompt context and generated-query helpers

Example:
    >>> from querybridge.api import create_app
    >>> from querybridge.config import load_config
    >>> app = create_app(load_config())
"""

__version__ = "1.0.0"
__title__ = "QueryBridge"
__description__ = "Multi-backend query proxy"

__all__ = [
    "__version__",
    "__title__",
    "__description__",
]
