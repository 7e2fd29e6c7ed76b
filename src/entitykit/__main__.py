"""Entry point for 'python -m entitykit' command.

This module allows the EntityKit CLI to be invoked using
'python -m entitykit'.
"""

from entitykit.cli import main

if __name__ == "__main__":
    main()
