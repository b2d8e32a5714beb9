"""Punto de entrada principal."""

import sys


def main() -> int:
    """Ejecutar aplicación."""
    from .cli import main as cli_main

    return cli_main()


if __name__ == "__main__":
    sys.exit(main())
