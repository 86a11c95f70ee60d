import sys

from inventory_catalog.cli import main

sys.exit(main())
