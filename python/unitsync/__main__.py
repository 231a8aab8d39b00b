"""Allow ``python -m unitsync``."""

from unitsync.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
