"""Main entry point dispatcher for fleetform commands."""

import sys


def main():
    """Dispatch to appropriate submodule based on command."""
    print("Use 'python -m fleetform.agent' to run the agent")
    print("Use 'fleetform' for the command-line interface")
    sys.exit(1)


if __name__ == "__main__":
    main()
