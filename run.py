"""Run the restarter from a source checkout."""

import sys

from restarter.main import main

if __name__ == "__main__":
    sys.exit(main())
