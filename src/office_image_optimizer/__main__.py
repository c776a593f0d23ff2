"""Allow ``python -m office_image_optimizer``."""

import sys

from .cli import main

sys.exit(main())
