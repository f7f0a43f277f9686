"""Main entry point when executing castkit as a package.

This allows running the package using python -m castkit.
"""

from castkit.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
