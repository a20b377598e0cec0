import sys

from httx.cli import main

sys.exit(main())
