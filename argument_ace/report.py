"""Paginated PDF report for a debate session.

Layout and drawing are separate steps. :meth:`ReportGenerator.render`
is a pure function from a session snapshot to pages of draw operations;
:meth:`ReportGenerator.to_pdf` paints those pages with reportlab. Every
independent block is measured before it is placed, and a block that
does not fit below the cursor moves to a fresh page whole.

Coordinates in the layout run top-down from the page's top edge.
"""

import io
import logging
import re
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path

from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from argument_ace.formats import get_format
from argument_ace.models import (
    AnalysisResult,
    DebateFormat,
    DebateSession,
    DebateTurn,
    ResearchBundle,
    Speaker,
    VerdictResult,
    Winner,
)
from argument_ace.transcript import speaker_label

logger = logging.getLogger(__name__)

PRIMARY_COLOR = "#3F51B5"
ACCENT_COLOR = "#FFA000"
TEXT_COLOR = "#212121"
LIGHT_TEXT_COLOR = "#757575"
USER_FILL = "#E8EAF6"
AI_FILL = "#F5F5F5"
FEEDBACK_FILL = "#FFF8E1"
CLASH_FILL = "#EDE7F6"

MARGIN = 40.0
BOX_PAD = 6.0
BOX_GAP = 10.0
FEEDBACK_INDENT = 15.0
BULLET_INDENT = 10.0


@dataclass(frozen=True)
class Style:
    font: str
    size: float
    color: str = TEXT_COLOR

    @property
    def leading(self) -> float:
        return self.size * 1.25


TITLE = Style("Helvetica-Bold", 22, PRIMARY_COLOR)
SECTION = Style("Helvetica-Bold", 16, PRIMARY_COLOR)
HEADING = Style("Helvetica-Bold", 11, PRIMARY_COLOR)
LABEL = Style("Helvetica-Bold", 10)
BODY = Style("Helvetica", 10)
META = Style("Helvetica", 9, LIGHT_TEXT_COLOR)
NOTE = Style("Helvetica-Oblique", 9, LIGHT_TEXT_COLOR)
BANNER = Style("Helvetica-Bold", 14, ACCENT_COLOR)
TOPIC = Style("Helvetica", 11)


@dataclass(frozen=True)
class TextOp:
    x: float
    y: float               # baseline
    text: str
    style: Style
    align: str = "left"    # "left", "right", "center"


@dataclass(frozen=True)
class BoxOp:
    x: float
    y: float               # top edge
    width: float
    height: float
    fill: str
    tag: str               # "user", "ai", "feedback", "clash"


@dataclass(frozen=True)
class LineOp:
    x1: float
    y1: float
    x2: float
    y2: float
    color: str = LIGHT_TEXT_COLOR


DrawOp = TextOp | BoxOp | LineOp


@dataclass
class Page:
    number: int
    ops: list[DrawOp] = field(default_factory=list)


@dataclass
class ReportLayout:
    title: str
    filename: str
    page_width: float
    page_height: float
    pages: list[Page]


@dataclass(frozen=True)
class _Row:
    """One line inside a box, with optional right-aligned metadata."""
    text: str
    style: Style
    indent: float = 0.0
    right: str | None = None


class _Cursor:
    """Vertical cursor over a growing list of pages."""

    def __init__(self, page_width: float, page_height: float, margin: float) -> None:
        self.page_width = page_width
        self.page_height = page_height
        self.margin = margin
        self.pages = [Page(1)]
        self.y = margin

    @property
    def content_width(self) -> float:
        return self.page_width - 2 * self.margin

    @property
    def bottom(self) -> float:
        return self.page_height - self.margin

    @property
    def usable_height(self) -> float:
        return self.bottom - self.margin

    def add(self, op: DrawOp) -> None:
        self.pages[-1].ops.append(op)

    def ensure(self, height: float) -> None:
        """Start a new page unless ``height`` fits below the cursor."""
        if self.y + height > self.bottom and self.y > self.margin:
            self.new_page()

    def new_page(self) -> None:
        self.pages.append(Page(len(self.pages) + 1))
        self.y = self.margin

    def wrap(self, text: str, width: float, style: Style) -> list[str]:
        lines: list[str] = []
        for paragraph in text.splitlines() or [""]:
            lines.extend(simpleSplit(paragraph, style.font, style.size, width) or [""])
        return lines

    def write(self, text: str, x: float, style: Style, align: str = "left") -> None:
        self.add(TextOp(x, self.y + style.size, text, style, align))
        self.y += style.leading


def _split_rows(rows: list[_Row], max_height: float) -> list[list[_Row]]:
    chunks: list[list[_Row]] = [[]]
    height = 0.0
    for row in rows:
        if chunks[-1] and height + row.style.leading > max_height:
            chunks.append([])
            height = 0.0
        chunks[-1].append(row)
        height += row.style.leading
    return chunks


_WINNER_LABELS = {Winner.USER: "User", Winner.AI: "AI Opponent", Winner.TIE: "Tie"}


def _turn_label(turn: DebateTurn) -> str:
    if turn.speaker is Speaker.USER:
        return speaker_label(turn)
    return f"AI Opponent ({turn.role})" if turn.role else "AI Opponent"


def report_filename(topic: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "_", topic, flags=re.IGNORECASE).strip("_")[:60]
    return f"ArgumentAce_Debate_{slug or 'untitled'}.pdf"


class ReportGenerator:
    """Lays out and draws the session summary PDF."""

    def __init__(self, page_size: tuple[float, float] = A4, margin: float = MARGIN) -> None:
        self.page_width, self.page_height = page_size
        self.margin = margin

    # -- layout ------------------------------------------------------------------

    def render(self, session: DebateSession, generated_on: date | None = None) -> ReportLayout:
        """Lay out ``session`` into pages. No I/O."""
        c = _Cursor(self.page_width, self.page_height, self.margin)
        self._header(c, session, generated_on or date.today())
        if session.research:
            self._research(c, session.research)
        if session.debate_log:
            self._transcript(c, session.debate_log)
        if session.verdict:
            self._verdict(c, session.verdict)
        logger.debug("Report for %r laid out on %d pages", session.topic, len(c.pages))
        return ReportLayout(
            title=f"ArgumentAce Debate: {session.topic}",
            filename=report_filename(session.topic),
            page_width=self.page_width,
            page_height=self.page_height,
            pages=c.pages,
        )

    def _header(self, c: _Cursor, session: DebateSession, generated_on: date) -> None:
        c.write("ArgumentAce Debate Summary", self.page_width / 2, TITLE, align="center")
        c.y += 4
        c.write(f"Generated on: {generated_on.isoformat()}", c.margin, META)
        c.y += 8

        label_width = 45.0
        topic_lines = c.wrap(session.topic, c.content_width - label_width, TOPIC)
        c.ensure(len(topic_lines) * TOPIC.leading + 6)
        c.add(TextOp(c.margin, c.y + HEADING.size, "Topic:", HEADING))
        for line in topic_lines:
            c.write(line, c.margin + label_width, TOPIC)
        c.y += 6

        details = [f"Skill Level: {session.reasoning_skill.value}"]
        if session.debate_format is not DebateFormat.STANDARD:
            details.append(f"Format: {get_format(session.debate_format).display_name}")
        if session.current_role:
            details.append(f"Role: {session.current_role}")
        c.ensure(BODY.leading + 10)
        c.write("   |   ".join(details), c.margin, BODY)
        c.y += 4
        c.add(LineOp(c.margin, c.y, self.page_width - c.margin, c.y))
        c.y += 6

    def _section_title(self, c: _Cursor, title: str) -> None:
        # Keep the title together with at least two body lines
        c.ensure(10 + SECTION.leading + 2 * BODY.leading)
        c.y += 10
        c.write(title, c.margin, SECTION)
        c.y += 4

    def _paragraph(self, c: _Cursor, text: str, x: float, width: float, style: Style, gap: float = 4) -> None:
        lines = c.wrap(text, width, style)
        height = len(lines) * style.leading
        if height <= c.usable_height:
            c.ensure(height + gap)
            for line in lines:
                c.write(line, x, style)
        else:
            for line in lines:
                c.ensure(style.leading)
                c.write(line, x, style)
        c.y += gap

    def _bullets(self, c: _Cursor, title: str, items: tuple[str, ...] | list[str]) -> None:
        if not items:
            return
        indent = c.margin + BULLET_INDENT
        width = c.content_width - BULLET_INDENT
        first = c.wrap(f"• {items[0]}", width, BODY)
        c.ensure(HEADING.leading + len(first) * BODY.leading)
        c.write(title, c.margin, HEADING)
        for item in items:
            self._paragraph(c, f"• {item}", indent, width, BODY, gap=3)
        c.y += 4

    def _boxed(self, c: _Cursor, rows: list[_Row], x: float, width: float, fill: str, tag: str) -> None:
        """Draw ``rows`` in a filled box that never straddles a page break.

        Rows that cannot fit on one page at all continue in a second box
        on the next page.
        """
        max_rows_height = c.usable_height - 2 * BOX_PAD - BOX_GAP
        for chunk in _split_rows(rows, max_rows_height):
            height = 2 * BOX_PAD + sum(r.style.leading for r in chunk)
            c.ensure(height + BOX_GAP)
            top = c.y
            c.add(BoxOp(x, top, width, height, fill, tag))
            line_top = top + BOX_PAD
            for row in chunk:
                baseline = line_top + row.style.size
                if row.text:
                    c.add(TextOp(x + BOX_PAD + row.indent, baseline, row.text, row.style))
                if row.right:
                    c.add(TextOp(x + width - BOX_PAD, baseline, row.right, META, align="right"))
                line_top += row.style.leading
            c.y = top + height + BOX_GAP

    def _research(self, c: _Cursor, research: ResearchBundle) -> None:
        self._section_title(c, "Research")
        self._bullets(c, "Arguments For", research.pro_points)
        self._bullets(c, "Arguments Against", research.con_points)
        self._bullets(c, "Key Facts", research.key_facts)

    def _transcript(self, c: _Cursor, log: tuple[DebateTurn, ...]) -> None:
        self._section_title(c, "Debate Log")
        width = c.content_width
        for turn in log:
            is_user = turn.speaker is Speaker.USER
            rows = [_Row(_turn_label(turn), LABEL, right=turn.timestamp.strftime("%H:%M:%S"))]
            rows += [_Row(line, BODY) for line in c.wrap(turn.text, width - 2 * BOX_PAD, BODY)]
            self._boxed(c, rows, c.margin, width, USER_FILL if is_user else AI_FILL, "user" if is_user else "ai")
            if is_user and turn.feedback is not None:
                self._feedback(c, turn.feedback)

    def _feedback(self, c: _Cursor, feedback: AnalysisResult) -> None:
        x = c.margin + FEEDBACK_INDENT
        width = c.content_width - FEEDBACK_INDENT
        text_width = width - 2 * BOX_PAD
        rows = [_Row("Coach Feedback", LABEL)]
        rows += [_Row(line, BODY) for line in c.wrap(feedback.feedback, text_width, BODY)]
        for title, items in (
            ("Logical Fallacies", feedback.fallacies),
            ("Persuasive Techniques", feedback.persuasive_techniques),
            ("Suggested Counterpoints", feedback.counterpoints),
        ):
            if not items:
                continue
            rows.append(_Row(title, LABEL))
            for item in items:
                lines = c.wrap(f"• {item}", text_width - BULLET_INDENT, BODY)
                rows += [_Row(line, BODY, indent=BULLET_INDENT) for line in lines]
        self._boxed(c, rows, x, width, FEEDBACK_FILL, "feedback")

    def _verdict(self, c: _Cursor, verdict: VerdictResult) -> None:
        self._section_title(c, "Jury Verdict")
        c.ensure(BANNER.leading + META.leading + 6)
        c.write(f"Winner: {_WINNER_LABELS[verdict.winner]}", c.margin, BANNER)
        c.write(f"Final score: {verdict.final_score:+g} (positive favours the user)", c.margin, META)
        c.y += 6

        c.ensure(HEADING.leading + BODY.leading)
        c.write("Overall Assessment", c.margin, HEADING)
        self._paragraph(c, verdict.overall_assessment, c.margin, c.content_width, BODY, gap=8)

        if verdict.clashes:
            c.ensure(HEADING.leading + 2 * BOX_PAD + 2 * LABEL.leading)
            c.write("Key Clashes", c.margin, HEADING)
            text_width = c.content_width - 2 * BOX_PAD
            for clash in verdict.clashes:
                rows = [_Row(clash.point, LABEL, right=f"{clash.winner.value} {clash.winner_score:+g}")]
                rows += [_Row(line, BODY) for line in c.wrap(clash.summary, text_width, BODY)]
                rows += [_Row(line, NOTE) for line in c.wrap(clash.reasoning, text_width, NOTE)]
                self._boxed(c, rows, c.margin, c.content_width, CLASH_FILL, "clash")

        self._bullets(c, "Your Strengths", verdict.user_strengths)
        self._bullets(c, "Your Weaknesses", verdict.user_weaknesses)
        self._bullets(c, "AI Strengths", verdict.ai_strengths)
        self._bullets(c, "AI Weaknesses", verdict.ai_weaknesses)
        if verdict.advice:
            c.ensure(HEADING.leading + BODY.leading)
            c.write("Advice", c.margin, HEADING)
            self._paragraph(c, verdict.advice, c.margin, c.content_width, BODY)

    # -- drawing ------------------------------------------------------------------

    def to_pdf(self, layout: ReportLayout) -> bytes:
        buffer = io.BytesIO()
        pdf = canvas.Canvas(buffer, pagesize=(layout.page_width, layout.page_height))
        pdf.setTitle(layout.title)
        pdf.setAuthor("ArgumentAce")
        for page in layout.pages:
            for op in page.ops:
                self._draw(pdf, op, layout.page_height)
            pdf.setFont(META.font, 8)
            pdf.setFillColor(HexColor(LIGHT_TEXT_COLOR))
            pdf.drawRightString(
                layout.page_width - self.margin,
                self.margin / 2,
                f"Page {page.number} of {len(layout.pages)}",
            )
            pdf.showPage()
        pdf.save()
        return buffer.getvalue()

    @staticmethod
    def _draw(pdf: canvas.Canvas, op: DrawOp, page_height: float) -> None:
        if isinstance(op, BoxOp):
            pdf.setFillColor(HexColor(op.fill))
            pdf.roundRect(op.x, page_height - op.y - op.height, op.width, op.height, 3, stroke=0, fill=1)
        elif isinstance(op, LineOp):
            pdf.setStrokeColor(HexColor(op.color))
            pdf.line(op.x1, page_height - op.y1, op.x2, page_height - op.y2)
        else:
            pdf.setFont(op.style.font, op.style.size)
            pdf.setFillColor(HexColor(op.style.color))
            y = page_height - op.y
            if op.align == "right":
                pdf.drawRightString(op.x, y, op.text)
            elif op.align == "center":
                pdf.drawCentredString(op.x, y, op.text)
            else:
                pdf.drawString(op.x, y, op.text)

    def write_pdf(self, session: DebateSession, directory: Path, generated_on: date | None = None) -> Path:
        layout = self.render(session, generated_on)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / layout.filename
        path.write_bytes(self.to_pdf(layout))
        logger.info("Report saved to: %s (%d pages)", path, len(layout.pages))
        return path
