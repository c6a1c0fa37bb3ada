#!/usr/bin/env python3
"""Entry point for deployrun CLI when run as python -m deployrun.cli."""

if __name__ == "__main__":
    from deployrun.cli.main import main

    main()
