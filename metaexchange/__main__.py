"""Allow ``python -m metaexchange``."""

from metaexchange.cli.app import main

main()
