"""Allow ``python -m notes_cli``."""

import sys

from notes_cli.cli import main

if __name__ == "__main__":
    sys.exit(main())
