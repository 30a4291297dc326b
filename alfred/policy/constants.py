"""Built-in command lists used by the policy engine and the shell tool."""

import re

# Read-only commands that run without asking, matched on the exact trimmed
# command line (so "ls" is safe but "ls; rm x" is not).
SAFE_COMMANDS: frozenset[str] = frozenset({
    "ls",
    "pwd",
    "echo",
    "cat",
    "grep",
    "find",
    "which",
    "man",
    "whoami",
    "date",
    "uname",
    "tree",
})

# Commands the shell tool refuses to run at all.
BANNED_COMMANDS: tuple[str, ...] = (
    "rm -rf /",
    "dd",
    "mkfs",
    "format",
    ":(){:|:&};:",
)

_BANNED_PATTERNS: dict[str, re.Pattern[str]] = {
    "rm -rf /": re.compile(r"\brm\s+-(?:rf|fr)\s+/(?:\*|\s|$)"),
    "dd": re.compile(r"(?<![\w.-])dd(?![\w.-])"),
    "mkfs": re.compile(r"(?<![\w.-])mkfs(?:\.\w+)?(?![\w-])"),
    "format": re.compile(r"(?<![\w.-])format(?![\w.-])"),
}

# Tools whose permission key includes an argument: tool name -> (label, field)
ARGUMENT_SENSITIVE_TOOLS: dict[str, tuple[str, str]] = {
    "bash": ("Bash", "command"),
}

# Commands whose subcommand is part of the offered permission prefix
SUBCOMMAND_TOOLS: frozenset[str] = frozenset({"git", "npm", "yarn", "pnpm"})


def find_banned_command(command: str) -> str | None:
    """Return the banned entry a command matches, or None.

    Word-like entries match whole words only ("dd" does not match "git add").
    The fork bomb matches regardless of whitespace.
    """
    for banned, pattern in _BANNED_PATTERNS.items():
        if pattern.search(command):
            return banned
    compact = "".join(command.split())
    if ":(){:|:&};:" in compact:
        return ":(){:|:&};:"
    return None


def extract_command_prefix(command: str) -> str:
    """Prefix offered when the user allows a command "always by prefix".

    git/npm/yarn/pnpm keep their subcommand ("git status", "npm install");
    everything else uses the first word.
    """
    parts = command.strip().split()
    if not parts:
        return command
    if parts[0] in SUBCOMMAND_TOOLS and len(parts) > 1:
        return f"{parts[0]} {parts[1]}"
    return parts[0]
