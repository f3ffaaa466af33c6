"""
iambench CLI Entry Point

Run with: python -m iambench
"""

from iambench.cli.main import main


if __name__ == "__main__":
    main()
