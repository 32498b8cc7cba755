"""
Roundscope CLI Entry Point

Allows running the package as a module: python -m roundscope
"""


def main():
    """Main entry point for the CLI."""
    from roundscope.cli import app

    app()


if __name__ == "__main__":
    main()
