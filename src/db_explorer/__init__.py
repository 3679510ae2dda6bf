"""Generic REST API over a discovered relational schema."""

# Submodules are imported explicitly to keep startup free of side effects:
# from db_explorer.catalog import discover
# from db_explorer.server.app import create_app

__all__ = [
    "catalog",
    "coercion",
    "config",
    "handlers",
    "router",
    "server",
]
