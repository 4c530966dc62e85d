"""Allow ``python -m execbench``."""

from execbench.cli import main

main()
