import sys

from version_plane.cli import main

sys.exit(main())
