"""Allow `python -m llmrelay` as a shortcut for `llmrelay serve`."""

import sys

from llmrelay.cli import cli

if __name__ == "__main__":
    cli(["serve", *sys.argv[1:]])
