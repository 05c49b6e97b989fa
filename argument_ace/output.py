"""Rich console output and markdown export for debate sessions."""

import logging
import re
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from argument_ace.models import (
    AnalysisResult,
    DebateSession,
    DebateTurn,
    ResearchBundle,
    Speaker,
    VerdictResult,
)
from argument_ace.transcript import speaker_label

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len]


def _bullets(items: tuple[str, ...] | list[str]) -> str:
    return "\n".join(f"- {item}" for item in items) if items else "_None_"


def print_turn(turn: DebateTurn) -> None:
    is_user = turn.speaker is Speaker.USER
    subtitle = turn.timestamp.strftime("%H:%M:%S")
    if turn.audio_ref:
        subtitle += f" | audio: {turn.audio_ref}"
    console.print(
        Panel(
            turn.text,
            title=f"[bold]{speaker_label(turn)}[/bold]",
            subtitle=subtitle,
            border_style="blue" if is_user else "magenta",
        )
    )


def print_feedback(feedback: AnalysisResult) -> None:
    body = "\n\n".join([
        feedback.feedback,
        f"**Logical fallacies**\n{_bullets(feedback.fallacies)}",
        f"**Persuasive techniques**\n{_bullets(feedback.persuasive_techniques)}",
        f"**Counterpoints to expect**\n{_bullets(feedback.counterpoints)}",
    ])
    console.print(Panel(Markdown(body), title="[bold yellow]Coach Feedback[/bold yellow]", border_style="yellow"))


def print_research(bundle: ResearchBundle) -> None:
    body = (
        f"**For the motion**\n{_bullets(bundle.pro_points)}\n\n"
        f"**Against the motion**\n{_bullets(bundle.con_points)}"
    )
    if bundle.key_facts:
        body += f"\n\n**Key facts**\n{_bullets(bundle.key_facts)}"
    console.print(Panel(Markdown(body), title="[bold cyan]Research[/bold cyan]", border_style="cyan"))


def print_topics(topics: list[str]) -> None:
    table = Table(title="Debate topics", show_header=False)
    table.add_column("#", style="dim", justify="right")
    table.add_column("Topic")
    for i, topic in enumerate(topics, 1):
        table.add_row(str(i), topic)
    console.print(table)


def print_verdict(verdict: VerdictResult) -> None:
    console.print(Rule("[bold green]Jury Verdict[/bold green]"))
    console.print(
        Text(f"Winner: {verdict.winner.value} | Final score: {verdict.final_score:+g}", style="bold")
    )
    console.print(Markdown(verdict.overall_assessment))
    if verdict.clashes:
        table = Table(title="Clashes", show_lines=True)
        table.add_column("Point", style="bold")
        table.add_column("Winner")
        table.add_column("Score", justify="right")
        table.add_column("Reasoning")
        for clash in verdict.clashes:
            table.add_row(clash.point, clash.winner.value, f"{clash.winner_score:+g}", clash.reasoning)
        console.print(table)
    console.print(Markdown(
        f"**Your strengths**\n{_bullets(verdict.user_strengths)}\n\n"
        f"**Your weaknesses**\n{_bullets(verdict.user_weaknesses)}"
    ))
    if verdict.advice:
        console.print(Panel(verdict.advice, title="Advice", border_style="green"))


def print_sessions(sessions: list[DebateSession]) -> None:
    if not sessions:
        console.print("[dim]No saved sessions.[/dim]")
        return
    table = Table(title="Saved Sessions")
    table.add_column("ID", style="dim")
    table.add_column("Topic")
    table.add_column("Turns", justify="right")
    table.add_column("Saved")
    table.add_column("Shared")
    for session in sessions:
        saved = session.updated_at.strftime("%Y-%m-%d %H:%M") if session.updated_at else "-"
        table.add_row(
            session.id or "-",
            session.topic[:60],
            str(len(session.debate_log)),
            saved,
            session.public_url or "",
        )
    console.print(table)


def save_to_file(session: DebateSession, output_dir: Path) -> Path:
    """Save the session transcript as a markdown file.

    Args:
        session: The session to export.
        output_dir: Directory to save the file in.

    Returns:
        Path to the saved file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    filepath = output_dir / f"{timestamp}_{_slug(session.topic)}.md"

    lines: list[str] = [
        f"# ArgumentAce Debate: {session.topic}",
        "",
        f"**Date:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"**Skill level:** {session.reasoning_skill.value}",
        f"**Format:** {session.debate_format.value}",
    ]
    if session.current_role:
        lines.append(f"**Role:** {session.current_role}")
    if session.public_url:
        lines.append(f"**Shared at:** {session.public_url}")
    lines += ["", "---", ""]

    if session.research:
        lines += [
            "## Research",
            "",
            "### For",
            _bullets(session.research.pro_points),
            "",
            "### Against",
            _bullets(session.research.con_points),
            "",
        ]
        if session.research.key_facts:
            lines += ["### Key facts", _bullets(session.research.key_facts), ""]

    lines += ["## Debate Log", ""]
    for turn in session.debate_log:
        lines.append(f"### {speaker_label(turn)} ({turn.timestamp.strftime('%H:%M:%S')})")
        lines += ["", turn.text, ""]
        if turn.feedback:
            lines += [
                "> **Feedback:** " + turn.feedback.feedback.replace("\n", "\n> "),
                "",
            ]

    if session.verdict:
        verdict = session.verdict
        lines += [
            "## Jury Verdict",
            "",
            f"**Winner:** {verdict.winner.value} (score {verdict.final_score:+g})",
            "",
            verdict.overall_assessment,
            "",
        ]
        for clash in verdict.clashes:
            lines.append(
                f"- **{clash.point}** ({clash.winner.value}, {clash.winner_score:+g}): {clash.reasoning}"
            )
        if verdict.advice:
            lines += ["", f"**Advice:** {verdict.advice}"]
        lines.append("")

    filepath.write_text("\n".join(lines), encoding="utf-8")
    logger.info("Transcript saved to: %s", filepath)
    return filepath
