"""Main entry point for the clinicore CLI.

Usage:
    python -m clinicore --help
"""

from clinicore.cli import main

if __name__ == "__main__":
    main()
