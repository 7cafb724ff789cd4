"""Module entrypoint for ``python -m diredit``.

This keeps module-mode execution behavior identical to the CLI script.
All argument parsing and session setup happen in ``diredit.cli``.
"""

from .cli import main


if __name__ == "__main__":
    main()
