"""
W3Stats CLI Entry Point

Allows running the package as a module: python -m w3stats
"""

from w3stats.cli import main

if __name__ == "__main__":
    main()
