#!/usr/bin/env python3
"""
Run the Edgework CLI with `python -m edgework`.
"""

from .cli import app

if __name__ == "__main__":
    app()
