import sys

from archspec.cli import main

raise SystemExit(main(sys.argv[1:]))
