"""Denylist validator gating every command before it reaches a shell.

This is pattern matching over the raw string, not a parse of shell grammar.
Encoded payloads or unicode look-alikes of denylisted tokens are not caught,
and legitimate commands that merely contain a denylisted fragment (``finish``
contains ``sh``) are rejected.
"""

from __future__ import annotations

import re

from cmdkit.core.logging import get_logger

from .exceptions import CommandValidationError, CommandViolation, ViolationKind

logger = get_logger(__name__)

# Shell chaining, substitution, expansion and redirection
CONTROL_CHARACTER_PATTERN = re.compile(r"&&|;|\||`|\$\(|\$@|\$#|\$\*|\$|>|<")

DENYLISTED_COMMAND_PATTERN = re.compile(
    r"rm\s|mv\s|cp\s|sudo|chown|chmod|wget|curl|nc|bash|sh|ssh|killall|reboot|shutdown|iptables|cat\s/etc/passwd"
)

PATH_TRAVERSAL_PATTERN = re.compile(r"\.\./")

_CHECKS: tuple[tuple[ViolationKind, re.Pattern[str], str], ...] = (
    (
        ViolationKind.CONTROL_CHARACTER,
        CONTROL_CHARACTER_PATTERN,
        "Command contains shell control characters and has been rejected.",
    ),
    (
        ViolationKind.DENYLISTED_COMMAND,
        DENYLISTED_COMMAND_PATTERN,
        "Command contains a denylisted system command and has been rejected.",
    ),
    (
        ViolationKind.PATH_TRAVERSAL,
        PATH_TRAVERSAL_PATTERN,
        "Command contains a path traversal sequence and has been rejected.",
    ),
)


class CommandValidator:
    """Stateless denylist check; the first failing check decides the violation kind."""

    def check(self, command: str | None) -> CommandViolation | None:
        """Return the first violation found, or None when the command is acceptable."""
        if command is None or not command.strip():
            return CommandViolation(kind=ViolationKind.EMPTY_COMMAND, message="Command cannot be empty.")

        normalized = command.strip().lower()
        for kind, pattern, message in _CHECKS:
            found = pattern.search(normalized)
            if found is not None:
                return CommandViolation(kind=kind, message=message, match=found.group(0))
        return None

    def validate(self, command: str | None) -> None:
        """Raise CommandValidationError when the command fails any check."""
        violation = self.check(command)
        if violation is not None:
            logger.warning("command.rejected", kind=violation.kind, match=violation.match)
            raise CommandValidationError(violation)

    def is_valid(self, command: str | None) -> bool:
        return self.check(command) is None
