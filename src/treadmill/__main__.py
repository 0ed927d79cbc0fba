"""Allow ``python -m treadmill``."""

import sys

from treadmill.main import main

sys.exit(main())
