import sys

from triton_driver import cli

sys.exit(cli.main())
