"""Unit tests for argument_ace/argument_file.py."""

import textwrap
from pathlib import Path

from argument_ace.argument_file import parse_file


def test_parse_file_no_frontmatter(tmp_path: Path) -> None:
    f = tmp_path / "speech.md"
    f.write_text("Homework widens the attainment gap.", encoding="utf-8")
    prepared = parse_file(f)
    assert prepared.text == "Homework widens the attainment gap."
    assert prepared.topic is None
    assert prepared.skill is None


def test_parse_file_with_frontmatter(tmp_path: Path) -> None:
    f = tmp_path / "speech.md"
    f.write_text(
        textwrap.dedent("""\
            ---
            topic: This house would ban homework
            skill: Advanced
            format: asian-parliamentary
            role: Prime Minister
            ---
            We define homework as unsupervised after-school work.
        """),
        encoding="utf-8",
    )
    prepared = parse_file(f)
    assert prepared.topic == "This house would ban homework"
    assert prepared.skill == "Advanced"
    assert prepared.debate_format == "asian-parliamentary"
    assert prepared.role == "Prime Minister"
    assert prepared.text.startswith("We define homework")


def test_parse_file_blank_values_are_none(tmp_path: Path) -> None:
    f = tmp_path / "speech.md"
    f.write_text("---\ntopic: Ban cars\nrole: ''\n---\nBody", encoding="utf-8")
    prepared = parse_file(f)
    assert prepared.topic == "Ban cars"
    assert prepared.role is None
