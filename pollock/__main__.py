"""Allow ``python -m pollock``."""

from pollock.main import main

if __name__ == "__main__":
    raise SystemExit(main())
