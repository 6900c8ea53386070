import sys

from regmesh.cli import main

sys.exit(main())
