"""
Allow running annexfacts as a module: ``python -m annexfacts``.

This delegates to the CLI entry point so that both
``annexfacts`` (console script) and ``python -m annexfacts``
behave identically.
"""

from annexfacts.cli import main

if __name__ == "__main__":
    main()
