import sys

from pipepool.presentation.cli import main

sys.exit(main())
