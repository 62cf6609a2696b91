import sys

from bustrack.cli import main

sys.exit(main())
