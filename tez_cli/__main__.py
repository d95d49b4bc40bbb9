"""Allow `python -m tez_cli`."""

import sys

from tez_cli.cli import main


if __name__ == "__main__":
    sys.exit(main())
