import sys

from percolation.cli import main

sys.exit(main())
