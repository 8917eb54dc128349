import sys

from aad_oauth.cli import main

sys.exit(main())
