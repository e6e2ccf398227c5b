"""Entry point for ``python -m transrpc``."""

from __future__ import annotations

from transrpc.cli.main import main

if __name__ == "__main__":
    main()
