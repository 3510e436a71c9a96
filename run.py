#!/usr/bin/env python
"""Entry point for the workflow engine CLI."""

# Load .env file before anything else
from dotenv import load_dotenv
load_dotenv()

from cadence.core.cli import main

if __name__ == "__main__":
    main()
