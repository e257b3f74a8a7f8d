"""Allow ``python -m qx``."""

from qx.cli import run

if __name__ == "__main__":
    run()
