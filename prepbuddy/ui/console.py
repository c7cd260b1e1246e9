"""Terminal rendering of questions, live transcripts, feedback and summaries."""

import logging
from typing import List, Optional

from pubsub import pub
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..models.events import RecordingStateEvent, TranscriptEvent, WarningEvent
from ..models.audio import RecordingState
from ..models.interview import Feedback, Question, SessionRecord
from ..services.session_manager import average_score
from ..transcription.publisher import RECORDING_STATE_TOPIC, TRANSCRIPT_TOPIC, WARNING_TOPIC

logger = logging.getLogger(__name__)


class ConsoleView:
    """Prints the practice loop and follows recording events.

    Subscribes to the session event topics on creation; call close() to
    unsubscribe.
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()
        self.last_transcript = ""
        self.warnings: List[WarningEvent] = []

        pub.subscribe(self.on_transcript, TRANSCRIPT_TOPIC)
        pub.subscribe(self.on_warning, WARNING_TOPIC)
        pub.subscribe(self.on_state, RECORDING_STATE_TOPIC)

    def close(self) -> None:
        for listener, topic in ((self.on_transcript, TRANSCRIPT_TOPIC),
                                (self.on_warning, WARNING_TOPIC),
                                (self.on_state, RECORDING_STATE_TOPIC)):
            if pub.isSubscribed(listener, topic):
                pub.unsubscribe(listener, topic)

    # Event listeners

    def on_transcript(self, event: TranscriptEvent) -> None:
        self.last_transcript = event.transcript
        if event.appended_text:
            self.console.print(Text.assemble(("  + ", "dim"), event.appended_text))

    def on_warning(self, event: WarningEvent) -> None:
        self.warnings.append(event)
        self.console.print(f"[bold yellow]Warning:[/] {event.message}")

    def on_state(self, event: RecordingStateEvent) -> None:
        if event.current == RecordingState.RECORDING:
            self.console.print("[bold red]Recording...[/] speak your answer")
        elif event.previous == RecordingState.RECORDING:
            self.console.print("[bold yellow]Recording stopped[/]")

    # Rendering

    def show_session_header(self, session: SessionRecord) -> None:
        profile = session.user_profile
        title = Text.assemble(
            ("Live session", "bold blue"), "  |  ",
            f"{profile.domain} · {profile.experience_level.value} · {profile.session_type.value}",
        )
        score = average_score(session)
        if score is not None:
            title.append(f"  |  Avg: {score}")
        self.console.print(Panel(title, style="bright_blue"))

    def show_question(self, number: int, question: Question) -> None:
        self.console.print(Panel(question.text, title=f"Question {number}", title_align="left"))

    def show_answer(self, answer_text: str) -> None:
        self.console.print(Panel(answer_text or "[dim]No answer captured[/]",
                                 title="Your answer", title_align="left"))

    def show_feedback(self, feedback: Feedback) -> None:
        table = Table(title=f"Score: {feedback.score} / 10", show_header=True, header_style="bold magenta")
        table.add_column("Strengths", style="green")
        table.add_column("Improvements", style="yellow")
        rows = max(len(feedback.strengths), len(feedback.improvements))
        for idx in range(rows):
            strength = feedback.strengths[idx] if idx < len(feedback.strengths) else ""
            improvement = feedback.improvements[idx] if idx < len(feedback.improvements) else ""
            table.add_row(strength, improvement)
        self.console.print(table)
        self.console.print(Panel(feedback.model_answer, title="Model answer", title_align="left"))

    def show_summary(self, session: SessionRecord) -> None:
        score = average_score(session)
        table = Table(title="Session summary", show_header=True, header_style="bold magenta")
        table.add_column("#", justify="right")
        table.add_column("Question")
        table.add_column("Score", justify="right")
        for idx, result in enumerate(session.results, 1):
            table.add_row(str(idx), result.question.text, str(result.feedback.score))
        self.console.print(table)
        self.console.print(f"Average score: [bold]{score if score is not None else 'N/A'}[/]")

    def show_sessions(self, sessions: List[SessionRecord]) -> None:
        if not sessions:
            self.console.print("No saved sessions")
            return
        table = Table(title="Saved sessions", show_header=True, header_style="bold magenta")
        table.add_column("Session")
        table.add_column("Profile")
        table.add_column("Answers", justify="right")
        table.add_column("Avg", justify="right")
        for session in sessions:
            profile = session.user_profile
            score = average_score(session)
            table.add_row(
                session.id[:8],
                f"{profile.domain} · {profile.experience_level.value} · {profile.session_type.value}",
                str(len(session.results)),
                str(score) if score is not None else "N/A",
            )
        self.console.print(table)

    def show_error(self, message: str) -> None:
        self.console.print(f"[bold red]Error:[/] {message}")
