"""Command-line front end: the REPL, event rendering and confirmation prompts."""
