import sys

from dashpipe.cli import main

sys.exit(main())
