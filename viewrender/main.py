# viewrender/main.py
"""Main entry point for the viewrender CLI application."""
from viewrender.cli.interface import main_cli_group


def entrypoint():
    """Function to be called by the script defined in pyproject.toml."""
    main_cli_group(prog_name="viewrender")

if __name__ == '__main__':
    entrypoint()
