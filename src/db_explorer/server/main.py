"""Allows ``python -m db_explorer.server.main``."""

from . import main

if __name__ == "__main__":
    main()
