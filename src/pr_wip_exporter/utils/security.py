"""Token redaction and repository name validation.

The exporter holds a GitHub token for its whole lifetime and logs request
failures, which may echo headers or response bodies. Redaction is fail-closed:
if a pattern cannot be applied the operation raises instead of passing the
text through.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import Iterable

log = structlog.get_logger()


class RedactionError(Exception):
    """Raised when secret redaction fails."""


# One owner or repository segment, as GitHub accepts it
REPO_SEGMENT_PATTERN = re.compile(r"^[A-Za-z0-9_.-]{1,100}$")

# (pattern, description); order matters, wider matches first
TOKEN_PATTERNS: tuple[tuple[str, str], ...] = (
    (r"(?i)\bbearer\s+[\w.-]{16,}", "Authorization header value"),
    (r"(?i)(token|secret|password)\s*[=:]\s*[\"']?[\w-]{16,}", "Credential assignment"),
    (r"github_pat_[A-Za-z0-9_]{22,}", "Fine-grained personal access token"),
    # Personal, OAuth, user-to-server, server-to-server and refresh tokens
    (r"gh[pousr]_[A-Za-z0-9]{36}", "Prefixed GitHub token"),
)


class SecretRedactor:
    """Replaces GitHub tokens in text with a placeholder.

    Besides the generic token shapes, the redactor can be given the exact
    token in use, which also catches legacy 40-character tokens that have no
    recognizable prefix.

    Usage:
        redactor = SecretRedactor(known_secrets=[token])
        safe_text = redactor.redact(error_message)
    """

    def __init__(
        self,
        placeholder: str = "[REDACTED]",
        known_secrets: Iterable[str] = (),
        extra_patterns: Iterable[tuple[str, str]] = (),
    ) -> None:
        """Initialize the SecretRedactor.

        Args:
            placeholder: String to replace detected secrets with.
            known_secrets: Literal secret values to redact wherever they appear.
            extra_patterns: Additional (pattern, description) tuples.

        Raises:
            RedactionError: If any pattern fails to compile.
        """
        self.placeholder = placeholder
        self._patterns: list[re.Pattern[str]] = [
            re.compile(re.escape(secret)) for secret in known_secrets if secret
        ]

        for pattern_str, description in (*TOKEN_PATTERNS, *extra_patterns):
            try:
                self._patterns.append(re.compile(pattern_str))
            except re.error as e:
                log.error(
                    "pattern_compilation_failed",
                    pattern=pattern_str,
                    description=description,
                    error=str(e),
                )
                raise RedactionError(f"Cannot compile {description} pattern: {e}") from e

    @property
    def pattern_count(self) -> int:
        """Number of patterns applied by ``redact``."""
        return len(self._patterns)

    def redact(self, text: str) -> str:
        """Return ``text`` with every detected secret replaced.

        Raises:
            RedactionError: If a pattern cannot be applied.
        """
        if not text:
            return text

        try:
            for pattern in self._patterns:
                text = pattern.sub(self.placeholder, text)
        except (TypeError, re.error) as e:
            raise RedactionError(f"Redaction failed: {e}") from e
        return text


def validate_repository(owner: str, name: str) -> bool:
    """Check that ``owner`` and ``name`` are plain GitHub name segments.

    Rejects empty values, path traversal segments and anything containing
    characters GitHub never allows in owner or repository names.
    """
    for segment in (owner, name):
        if segment in ("", ".", "..") or not REPO_SEGMENT_PATTERN.match(segment):
            return False
    return True


def mask_secret(value: str) -> str:
    """Shorten a secret to its first and last four characters for logging."""
    if len(value) > 12:
        return f"{value[:4]}...{value[-4:]}"
    return "***"
