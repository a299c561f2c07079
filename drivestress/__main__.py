#!/usr/bin/env python3
"""Run the drivestress CLI with ``python -m drivestress``."""

from __future__ import annotations

from drivestress.cli.main import main

if __name__ == "__main__":
    main()
