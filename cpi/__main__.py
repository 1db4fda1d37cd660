"""Module entrypoint for ``python -m cpi``."""

from cpi.cli import main

raise SystemExit(main())
