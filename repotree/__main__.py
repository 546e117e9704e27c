"""Module entrypoint for ``python -m repotree``."""

from .cli import main


if __name__ == "__main__":
    main()
