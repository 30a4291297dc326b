"""Allow ``python -m alfred``."""

from alfred.cli.repl import main

if __name__ == "__main__":
    main()
