"""Allow ``python -m outmon``."""

import sys

from outmon.cli import main

sys.exit(main())
