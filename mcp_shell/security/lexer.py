"""
Lexical helpers shared by the command validator and the executor.

Nothing here interprets a command; these helpers only look at the surface
text for characters and sequences a shell would treat specially.
"""

from typing import List

# Characters with special meaning to a POSIX shell
SHELL_METACHARACTERS = "|&;<>(){}[]$`\\"

# Multi-character (and a few single-character) sequences that enable
# substitution, chaining, redirection or background execution
DANGEROUS_CONSTRUCTS = (
    "$(",
    "`",
    "${",
    "&&",
    "||",
    ";",
    "|",
    ">",
    "<",
    ">>",
    "<<",
    "&",
)


def contains_shell_metacharacters(text: str) -> bool:
    """Return True if any shell metacharacter appears in *text*."""
    return any(char in SHELL_METACHARACTERS for char in text)


def contains_dangerous_constructs(text: str) -> bool:
    """Return True if any dangerous shell construct appears in *text*."""
    return any(construct in text for construct in DANGEROUS_CONSTRUCTS)


def split_command(command: str) -> List[str]:
    """Split a command on runs of whitespace.

    Quotes are not honoured: a quoted argument containing spaces becomes
    several tokens, exactly as it would be seen by the validator.
    """
    return command.split()
