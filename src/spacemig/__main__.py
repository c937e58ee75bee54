"""Allow running as ``python -m spacemig``."""

from spacemig.cli import cli_main

if __name__ == "__main__":
    cli_main()
