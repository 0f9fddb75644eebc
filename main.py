#!/usr/bin/env python3
"""
AerSub Runtime Entry Point

Serves line-delimited JSON requests on stdin and writes replies to stdout.
"""

import sys
from aersub.cli import CLIHandler

if __name__ == "__main__":
    if sys.version_info < (3, 8):
        sys.stderr.write("AerSub requires Python 3.8 or later.\n")
        sys.exit(1)

    cli = CLIHandler()
    cli.run()
