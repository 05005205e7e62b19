"""Entry point for python -m mizan_memory"""

import sys

from .cli import main

sys.exit(main())
