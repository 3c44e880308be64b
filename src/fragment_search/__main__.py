import sys

from fragment_search.cli import main


sys.exit(main())
