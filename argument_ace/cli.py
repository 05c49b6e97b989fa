"""Click CLI: debate practice loop, saved sessions, shared links, reports, timers."""

import asyncio
import logging
import sys
from dataclasses import replace
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeRemainingColumn

from argument_ace.argument_file import PreparedArgument, parse_file
from argument_ace.errors import DebateError
from argument_ace.formats import get_format
from argument_ace.healthcheck import run_health_checks, working_providers
from argument_ace.models import DebateFormat, Draft, ReasoningSkill, Speaker
from argument_ace.orchestrator import SessionHolder, TurnOrchestrator
from argument_ace.output import (
    print_feedback,
    print_research,
    print_sessions,
    print_topics,
    print_turn,
    print_verdict,
    save_to_file,
)
from argument_ace.providers.base import AIProvider
from argument_ace.providers.registry import build_providers
from argument_ace.report import ReportGenerator
from argument_ace.services import DebateServices
from argument_ace.speech import OpenAISpeechSynthesizer, SpeechSynthesizer
from argument_ace.store import JsonFileStore, SessionStore, is_valid_key
from argument_ace.timer import ClockTimer
from config.config_loader import AppConfig, load_config

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

_HELP = """\
[bold]Commands[/bold]
  <text>            submit an argument
  /draft <text>     add text to your draft without submitting
  /poi              ask the opponent for a Point of Information on the draft
  /answer <text>    answer the POI (folded into the draft)
  /decline          decline the POI
  /send             submit the draft
  /generate         write an example argument into your draft
  /research         research the topic
  /verdict          ask the jury for a verdict
  /save             save the session
  /share            publish the session and print its public link
  /report           write the PDF report
  /export           write a markdown transcript
  /quit             leave (unsaved changes are lost)
"""


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _session_store(config: AppConfig) -> SessionStore:
    return SessionStore(JsonFileStore(config.defaults.data_dir), config.defaults.share_origin)


def _check_providers(providers: dict[str, AIProvider]) -> dict[str, AIProvider]:
    """Ping providers and keep the ones that answer. Exits when none do."""
    console.print("\n[bold]Checking providers...[/bold]")
    results = asyncio.run(run_health_checks(providers))
    for name in sorted(results):
        result = results[name]
        if result.ok:
            console.print(f"  [green]OK  [/green] {name} [dim]({result.latency_sec:.1f}s)[/dim]")
        else:
            short_err = result.error.splitlines()[0][:120] if result.error else "unknown error"
            console.print(f"  [red]FAIL[/red] {name}: {short_err}")
    working = working_providers(providers, results)
    if not working:
        console.print("\n[bold red]Error:[/bold red] No providers passed the health check.")
        sys.exit(1)
    console.print()
    return working


def _build_speech(config: AppConfig) -> SpeechSynthesizer | None:
    if not config.speech.enabled:
        return None
    try:
        return OpenAISpeechSynthesizer(config.speech, config.defaults.audio_dir)
    except DebateError as exc:
        logger.info("Speech disabled: %s", exc)
        return None


def _build_services(config: AppConfig, skip_health_check: bool) -> DebateServices:
    providers = build_providers(config)
    if not providers:
        console.print("[bold red]Error:[/bold red] No providers available. Check API keys in .env.")
        sys.exit(1)
    if not skip_health_check:
        providers = _check_providers(providers)
    return DebateServices.from_config(config, providers)


def _build_orchestrator(config: AppConfig, skip_health_check: bool) -> TurnOrchestrator:
    return TurnOrchestrator(
        services=_build_services(config, skip_health_check),
        speech=_build_speech(config),
        store=_session_store(config),
        min_turns_for_jury=config.defaults.min_turns_for_jury,
        min_chars_for_poi=config.defaults.min_chars_for_poi,
    )


async def _run_timer(timer: ClockTimer, label: str) -> None:
    """Show a countdown until the timer completes. Ctrl-C pauses and saves it."""
    timer.start()
    with Progress(
        SpinnerColumn(),
        TextColumn(f"[progress.description]{label}"),
        BarColumn(),
        TimeRemainingColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task(label, total=timer.state.total_duration)
        try:
            await timer.run(
                interval=1.0,
                on_tick=lambda remaining: progress.update(task, completed=timer.state.total_duration - remaining),
            )
        except asyncio.CancelledError:
            timer.pause()
            await timer.save()
            raise
    await timer.save()


async def _prep_phase(config: AppConfig, holder: SessionHolder) -> None:
    info = get_format(holder.session.debate_format)
    if not info.prep_seconds:
        return
    store = JsonFileStore(config.defaults.data_dir)
    key = f"prep-{holder.session.key}"
    timer = await ClockTimer.restore(
        store, key, info.prep_seconds,
        on_complete=lambda: console.print("[bold yellow]Preparation time is over.[/bold yellow]"),
    )
    console.print(f"[dim]{info.display_name}: {info.prep_minutes} minutes to prepare. Ctrl-C to stop early.[/dim]")
    try:
        await _run_timer(timer, "Preparation")
    except asyncio.CancelledError:
        # Ctrl-C ends preparation early; the debate continues
        asyncio.current_task().uncancel()
    finally:
        used = timer.time_used
        await timer.discard()
    holder.apply(lambda s: replace(s, prep_time_used=used))
    console.print(f"Preparation used: {used / 60:.1f} minutes\n")


async def _handle_command(
    line: str,
    holder: SessionHolder,
    orchestrator: TurnOrchestrator,
    config: AppConfig,
) -> bool:
    """Run one REPL command. Returns False when the loop should end."""
    command, _, arg = line.partition(" ")
    arg = arg.strip()

    if command in ("/quit", "/exit"):
        return False
    if command == "/help":
        console.print(_HELP)
    elif command == "/draft":
        text = f"{holder.draft.text}\n{arg}".strip()
        holder.draft = Draft(text=text, poi=holder.draft.poi)
        console.print(f"[dim]Draft: {len(text)} characters[/dim]")
    elif command == "/poi":
        question = await orchestrator.request_point_of_information(holder, holder.draft.text)
        console.print(f"[bold magenta]POI:[/bold magenta] {question}  [dim](/answer or /decline)[/dim]")
    elif command == "/answer":
        orchestrator.answer_point_of_information(holder, arg)
        console.print("[dim]Your answer was added to the draft.[/dim]")
    elif command == "/decline":
        orchestrator.decline_point_of_information(holder)
        console.print("[dim]POI declined.[/dim]")
    elif command == "/send":
        await _submit(holder.draft.text, holder, orchestrator)
    elif command == "/generate":
        with console.status("Writing an example argument..."):
            argument = await orchestrator.generate_argument(holder)
        console.print(f"[dim]Example argument loaded into the draft ({len(argument)} characters). /send to submit.[/dim]")
        console.print(argument)
    elif command == "/research":
        with console.status("Researching..."):
            bundle = await orchestrator.research_topic(holder)
        print_research(bundle)
    elif command == "/verdict":
        with console.status("The jury is deliberating..."):
            verdict = await orchestrator.request_verdict(holder)
        print_verdict(verdict)
    elif command == "/save":
        await orchestrator.drain()
        session = await orchestrator.save(holder)
        console.print(f"[green]Saved[/green] session {session.id}")
    elif command == "/share":
        share_id, public_url = await orchestrator.share(holder)
        console.print(f"[green]Published[/green] {share_id}: {public_url}")
    elif command == "/report":
        path = ReportGenerator().write_pdf(holder.session, config.defaults.report_dir)
        console.print(f"[dim]Report saved to: {path}[/dim]")
    elif command == "/export":
        path = save_to_file(holder.session, config.defaults.report_dir)
        console.print(f"[dim]Transcript saved to: {path}[/dim]")
    elif command.startswith("/"):
        console.print(f"[red]Unknown command {command}[/red] (try /help)")
    else:
        await _submit(line, holder, orchestrator)
    return True


async def _submit(text: str, holder: SessionHolder, orchestrator: TurnOrchestrator) -> None:
    with console.status("Your opponent is thinking..."):
        session = await orchestrator.submit_turn(holder, text)
    user_turn, ai_turn = session.debate_log[-2], session.debate_log[-1]
    if user_turn.speaker is Speaker.USER and user_turn.feedback:
        print_feedback(user_turn.feedback)
    print_turn(ai_turn)


async def _debate_loop(
    config: AppConfig,
    orchestrator: TurnOrchestrator,
    holder: SessionHolder,
    prepared: PreparedArgument | None,
    with_prep: bool,
) -> None:
    console.print(f"\n[bold cyan]ArgumentAce[/bold cyan]: {holder.session.topic}")
    console.print(f"Opponent skill: {holder.session.reasoning_skill.value}. Type /help for commands.\n")

    if with_prep:
        await _prep_phase(config, holder)
    if prepared and prepared.text:
        holder.draft = Draft(text=prepared.text)
        console.print(f"[dim]Prepared argument loaded into the draft ({len(prepared.text)} characters). /send to submit.[/dim]")

    while True:
        line = (await asyncio.to_thread(console.input, "[bold blue]> [/bold blue]")).strip()
        if not line:
            continue
        try:
            if not await _handle_command(line, holder, orchestrator, config):
                break
        except DebateError as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}")

    await orchestrator.drain()


@click.group()
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """ArgumentAce -- practise debating against an AI opponent."""
    load_dotenv()
    _setup_logging(verbose)
    try:
        ctx.obj = load_config()
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)


@main.command()
@click.argument("topic", required=False)
@click.option("--skill", type=click.Choice([s.value for s in ReasoningSkill]), default=None,
              help="Opponent reasoning skill (default: from config)")
@click.option("--format", "debate_format", type=click.Choice([f.value for f in DebateFormat]),
              default=None, help="Debate format (default: standard)")
@click.option("--role", default=None, help="Your speaking role in role-based formats")
@click.option("--file", "argument_file", type=click.Path(exists=True, path_type=Path),
              help="Prepared argument (.md with optional front-matter)")
@click.option("--prep", is_flag=True, help="Run the format's preparation timer first")
@click.option("--skip-health-check", is_flag=True, default=False,
              help="Skip the API connectivity check at startup")
@click.pass_obj
def debate(
    config: AppConfig,
    topic: str | None,
    skill: str | None,
    debate_format: str | None,
    role: str | None,
    argument_file: Path | None,
    prep: bool,
    skip_health_check: bool,
) -> None:
    """Debate TOPIC against the AI opponent.

    \b
    Examples:
      argument-ace debate "Social media does more harm than good"
      argument-ace debate "Ban homework" --skill Advanced
      argument-ace debate --file speech.md --format asian-parliamentary --prep
    """
    prepared = parse_file(argument_file) if argument_file else None
    topic = topic or (prepared.topic if prepared else None)
    if not topic:
        console.print("[bold red]Error:[/bold red] Provide a TOPIC argument or a --file with a topic.")
        sys.exit(1)

    orchestrator = _build_orchestrator(config, skip_health_check)
    try:
        session = orchestrator.start_topic(
            topic,
            skill=ReasoningSkill(skill or (prepared and prepared.skill) or config.defaults.reasoning_skill),
            debate_format=DebateFormat(debate_format or (prepared and prepared.debate_format) or "standard"),
            role=role or (prepared.role if prepared else None),
        )
    except (DebateError, ValueError) as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        sys.exit(1)

    holder = SessionHolder(session)
    try:
        asyncio.run(_debate_loop(config, orchestrator, holder, prepared, prep))
    except (KeyboardInterrupt, EOFError):
        console.print("\n[dim]Bye.[/dim]")


@main.command()
@click.pass_obj
def sessions(config: AppConfig) -> None:
    """List saved sessions, newest first."""
    print_sessions(asyncio.run(_session_store(config).list_sessions()))


@main.command()
@click.argument("session_id", required=False)
@click.option("--all", "delete_all", is_flag=True, help="Delete every saved session")
@click.pass_obj
def delete(config: AppConfig, session_id: str | None, delete_all: bool) -> None:
    """Delete a saved session (published copies stay online)."""
    store = _session_store(config)
    if delete_all:
        if not click.confirm("Delete all saved sessions?", default=False):
            return
        count = asyncio.run(store.delete_all())
        console.print(f"Deleted {count} sessions.")
    elif session_id:
        if asyncio.run(store.delete(session_id)):
            console.print(f"Deleted {session_id}.")
        else:
            console.print(f"[yellow]No session {session_id}.[/yellow]")
    else:
        console.print("[bold red]Error:[/bold red] Provide a SESSION_ID or --all.")
        sys.exit(1)


@main.command()
@click.argument("share_id")
@click.pass_obj
def shared(config: AppConfig, share_id: str) -> None:
    """Show a published session."""
    session = asyncio.run(_session_store(config).fetch_public(share_id))
    if session is None:
        console.print("[yellow]Shared session not found. The link may have expired.[/yellow]")
        sys.exit(1)
    console.print(f"[bold cyan]{session.topic}[/bold cyan] ({session.reasoning_skill.value})\n")
    for turn in session.debate_log:
        print_turn(turn)
    if session.verdict:
        print_verdict(session.verdict)


@main.command()
@click.argument("session_id")
@click.option("--output", "output_path", default=None, help="Output directory (default: from config)")
@click.option("--markdown", is_flag=True, help="Write a markdown transcript instead of a PDF")
@click.pass_obj
def report(config: AppConfig, session_id: str, output_path: str | None, markdown: bool) -> None:
    """Export a saved session as a PDF report."""
    session = asyncio.run(_session_store(config).load(session_id))
    if session is None:
        console.print(f"[bold red]Error:[/bold red] No session {session_id}.")
        sys.exit(1)
    output_dir = Path(output_path) if output_path else config.defaults.report_dir
    path = save_to_file(session, output_dir) if markdown else ReportGenerator().write_pdf(session, output_dir)
    console.print(f"[dim]Saved to: {path}[/dim]")


@main.command()
@click.option("--category", default=None, help="Focus the suggestions, e.g. technology or ethics")
@click.option("--skip-health-check", is_flag=True, default=False,
              help="Skip the API connectivity check at startup")
@click.pass_obj
def topics(config: AppConfig, category: str | None, skip_health_check: bool) -> None:
    """Suggest debate topics to practise on."""
    services = _build_services(config, skip_health_check)
    try:
        suggestions = asyncio.run(services.suggest_topics(category))
    except DebateError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        sys.exit(1)
    print_topics(suggestions)


def _validate_key(ctx: click.Context, param: click.Parameter, value: str) -> str:
    if not is_valid_key(value):
        raise click.BadParameter('use only letters, digits, "-", "_" and "." (no leading dot)')
    return value


@main.command()
@click.argument("seconds", type=float, required=False)
@click.option("--key", default="speech", callback=_validate_key, help="Name the timer is saved under")
@click.option("--reset", "reset_timer", is_flag=True, help="Start over from the full duration")
@click.pass_obj
def timer(config: AppConfig, seconds: float | None, key: str, reset_timer: bool) -> None:
    """Run a resumable countdown. Ctrl-C pauses it; run again to resume."""
    duration = seconds or config.defaults.speech_time_sec
    store = JsonFileStore(config.defaults.data_dir)

    async def _run() -> ClockTimer:
        clock_timer = await ClockTimer.restore(
            store, key, duration,
            on_complete=lambda: console.print("[bold yellow]Time is up![/bold yellow]"),
        )
        if reset_timer:
            clock_timer.reset()
        if clock_timer.completed:
            console.print("[yellow]Timer already finished. Use --reset to start over.[/yellow]")
            return clock_timer
        await _run_timer(clock_timer, key.title())
        return clock_timer

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        console.print(f"\n[dim]Timer '{key}' paused. Run the same command to resume.[/dim]")


if __name__ == "__main__":
    main()
