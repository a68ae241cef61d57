"""
Main entry point for running secure_env as a module.

Usage:
    python -m secure_env <command> [options]
"""

from .cli import main
import sys

if __name__ == "__main__":
    sys.exit(main())
