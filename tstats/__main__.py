import sys

from tstats.cli import main

sys.exit(main())
