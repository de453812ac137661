import sys

from ccparse.cli import main

sys.exit(main())
