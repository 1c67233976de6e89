"""Package entry point for ``python -m dialogflow_fulfillment``.

Delegates to the CLI's main(); see cli.py for the subcommands.
"""

from dialogflow_fulfillment.cli import main

if __name__ == "__main__":
    main()
