"""Entry point for ``python -m arxiv_catalog``."""

import sys

from arxiv_catalog.cli import main

if __name__ == "__main__":
    sys.exit(main())
