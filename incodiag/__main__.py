"""Allow ``python -m incodiag``."""

from incodiag.main import main

raise SystemExit(main())
