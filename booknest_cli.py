#!/usr/bin/env python3
"""
Project-level CLI launcher.

Usage:
    python booknest_cli.py <command> [options]
"""

from booknest.cli.main import main


if __name__ == "__main__":
    raise SystemExit(main())
