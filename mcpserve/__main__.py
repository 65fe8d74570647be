"""Entry point for running mcpserve as a module: python -m mcpserve"""

import sys

from mcpserve.cli.serve import main

if __name__ == "__main__":
    sys.exit(main())
