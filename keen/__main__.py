"""Allow keen to be executable through `python -m keen`."""
from keen.cli import app


if __name__ == "__main__":  # pragma: no cover
    app(prog_name="keen")
