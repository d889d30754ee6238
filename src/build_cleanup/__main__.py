"""Allow ``python -m build_cleanup``."""

import sys

from .main import main

sys.exit(main())
