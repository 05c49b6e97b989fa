"""Prepared-argument files: markdown body plus optional YAML front-matter."""

from dataclasses import dataclass
from pathlib import Path

import frontmatter


@dataclass
class PreparedArgument:
    text: str
    topic: str | None = None
    skill: str | None = None
    debate_format: str | None = None
    role: str | None = None


def parse_file(file_path: Path) -> PreparedArgument:
    """Parse a prepared argument.

    Recognised front-matter keys: ``topic``, ``skill``, ``format``, ``role``.
    Without front-matter the whole file is the argument text.
    """
    post = frontmatter.load(str(file_path))
    meta = post.metadata

    def _opt(key: str) -> str | None:
        value = meta.get(key)
        return str(value).strip() if value not in (None, "") else None

    return PreparedArgument(
        text=post.content.strip(),
        topic=_opt("topic"),
        skill=_opt("skill"),
        debate_format=_opt("format"),
        role=_opt("role"),
    )
