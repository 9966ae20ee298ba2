"""Run the Stack Tracker command line with ``python -m stacktracker``."""
import sys

from .cli import main

sys.exit(main())
