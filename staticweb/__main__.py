"""Entry point for the staticweb CLI.

Runs the CLI when the package is executed with ``python -m staticweb``.
"""

from .cli import main

if __name__ == "__main__":  # pragma: no cover
    main()
