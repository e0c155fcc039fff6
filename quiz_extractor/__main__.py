"""
Module entry point for: python -m quiz_extractor

Allows running the extractor directly as a module:
    python -m quiz_extractor parse <questions> [--answers <answers>]
    python -m quiz_extractor answers <answers>
    python -m quiz_extractor validate <result.json>
"""

from .cli import cli


def main():
    cli()


if __name__ == "__main__":
    main()
