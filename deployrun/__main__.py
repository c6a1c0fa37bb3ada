"""Entry point for ``python -m deployrun``."""

from deployrun.cli.main import main

if __name__ == "__main__":
    main()
