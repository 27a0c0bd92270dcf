"""Allow ``python -m omnisearch_mcp``."""

from .cli import main

raise SystemExit(main())
