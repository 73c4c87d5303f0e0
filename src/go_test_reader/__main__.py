"""Allow ``python -m go_test_reader``."""

from go_test_reader.cli import main

main()
