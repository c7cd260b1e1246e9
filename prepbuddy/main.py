"""Main application entry point for PrepBuddy."""

import os
import sys
import asyncio
import argparse
import logging
from pathlib import Path
from typing import Optional

from .config import PrepBuddyConfig
from .exceptions import PrepBuddyError
from .llm.chat_client import ChatCompletionClient
from .models.interview import ExperienceLevel, SessionRecord, SessionType, UserProfile, Question
from .services.interview_service import InterviewService
from .services.recording_session import RecordingSession
from .services.session_manager import SessionManager
from .services.transcription_service import TranscriptionService
from .ui.console import ConsoleView

logger = logging.getLogger(__name__)

JOIN_TIMEOUT_SECONDS = 30.0


class PracticeApp:
    """Runs one practice session in the terminal."""

    def __init__(self, config_path: Optional[str] = None, log_level: Optional[str] = None):
        self.config = PrepBuddyConfig(config_path)
        level = log_level or self.config.get('logging.level', 'INFO')
        setup_logging(self.config, level)
        self.session_manager = SessionManager(self.config)
        self.view = ConsoleView()
        self.interview_service: Optional[InterviewService] = None
        self.transcription_service: Optional[TranscriptionService] = None

    def init(self) -> None:
        """Create the API clients. Requires an API key."""
        logger.info("Initializing services...")
        client = ChatCompletionClient(
            api_key=self.config.get_api_key(),
            model=os.environ.get('OPENAI_MODEL') or self.config.get('openai.model', 'gpt-4o-mini'),
            base_url=self.config.get('openai.base_url', 'https://api.openai.com/v1'),
            timeout_seconds=self.config.get('openai.request_timeout_seconds', 60.0),
        )
        self.interview_service = InterviewService(client)
        self.transcription_service = TranscriptionService(self.config)

    async def run(self, profile: UserProfile, question_count: int,
                  record_seconds: float, text_mode: bool) -> SessionRecord:
        session = self.session_manager.create_session(profile)
        recording = None
        if not text_mode:
            recording = self.transcription_service.create_recording_session()
        self.view.show_session_header(session)

        try:
            for number in range(1, question_count + 1):
                question = await self.interview_service.generate_question(profile, session.previous_questions)
                self.view.show_question(number, question)

                if recording is not None:
                    answer = await self._record_answer(recording, question, record_seconds)
                else:
                    answer = await self._type_answer()

                if not answer.strip():
                    self.view.show_error("No answer captured, skipping question")
                    continue

                feedback = await self.interview_service.evaluate_answer(question, answer, profile)
                self.view.show_feedback(feedback)
                session = self.session_manager.save_result(session.id, question, answer, feedback)
        finally:
            if recording is not None:
                recording.teardown()

        self.view.show_summary(session)
        return session

    async def _record_answer(self, recording: RecordingSession, question: Question,
                             record_seconds: float) -> str:
        recording.begin_question(question.id)
        result = recording.start_recording()
        if not result["success"]:
            self.view.show_error(result["error"])
            return await self._type_answer()

        await asyncio.sleep(record_seconds)
        recording.stop_recording()

        try:
            await asyncio.wait_for(recording.join(), timeout=JOIN_TIMEOUT_SECONDS)
        except asyncio.TimeoutError:
            logger.warning(f"Transcription still pending after {JOIN_TIMEOUT_SECONDS}s, "
                           f"using transcript so far")

        answer = recording.transcript
        self.view.show_answer(answer)
        if not answer:
            return await self._type_answer()
        return answer

    async def _type_answer(self) -> str:
        return await asyncio.to_thread(self.view.console.input, "[bold]Type your answer:[/] ")

    def cleanup(self) -> None:
        self.view.close()


def setup_logging(config, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/prepbuddy.log')
    console_output = config.get('logging.console_output', True)

    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    # Console handler - only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)  # Only show warnings and above on console
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger = logging.getLogger(__name__)
    logger.info("="*50)
    logger.info("PrepBuddy starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("="*50)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="PrepBuddy - Interview practice with spoken answers",
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: built-in settings)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: from config, INFO)"
    )

    parser.add_argument("--domain", type=str, help="Interview domain, e.g. 'software engineering'")
    parser.add_argument(
        "--level",
        choices=[level.value for level in ExperienceLevel],
        default=ExperienceLevel.MID.value,
        help="Experience level (default: mid)"
    )
    parser.add_argument(
        "--type",
        dest="session_type",
        choices=[session_type.value for session_type in SessionType],
        default=SessionType.MIXED.value,
        help="Session type (default: mixed)"
    )
    parser.add_argument("--company", type=str, help="Target company (optional)")
    parser.add_argument("--questions", type=int, help="Number of questions (default: from config, 3)")
    parser.add_argument(
        "--record-seconds",
        type=float,
        help="How long to record each spoken answer (default: from config, 30)"
    )
    parser.add_argument("--text", action="store_true", help="Type answers instead of speaking them")
    parser.add_argument("--list-sessions", action="store_true", help="List saved sessions and exit")
    parser.add_argument("--save-api-key", type=str, metavar="KEY", help="Store an OpenAI API key and exit")

    parser.add_argument(
        "--version",
        action="version",
        version="PrepBuddy v0.1.0"
    )
    return parser


def session_settings(args, config):
    """Question count and recording length: command line first, then config."""
    questions = args.questions
    if questions is None:
        questions = config.get('interview.questions_per_session', 3)
    record_seconds = args.record_seconds
    if record_seconds is None:
        record_seconds = config.get('interview.record_seconds', 30.0)
    return questions, record_seconds


def main() -> None:
    """Main entry point for PrepBuddy."""
    parser = build_parser()
    args = parser.parse_args()

    app = PracticeApp(args.config, args.log_level)
    try:
        if args.save_api_key:
            path = app.config.save_api_key(args.save_api_key)
            print(f"API key saved to {path}")
            return

        if args.list_sessions:
            app.view.show_sessions(app.session_manager.list_sessions())
            return

        if not args.domain:
            parser.error("--domain is required to start a session")

        profile = UserProfile(
            domain=args.domain,
            experience_level=ExperienceLevel(args.level),
            session_type=SessionType(args.session_type),
            target_company=args.company,
        )
        questions, record_seconds = session_settings(args, app.config)
        app.init()
        asyncio.run(app.run(profile, questions, record_seconds, args.text))
    except KeyboardInterrupt:
        print("\nGoodbye!")
    except (PrepBuddyError, ValueError) as e:
        app.view.show_error(str(e))
        logger.error(f"Application error: {e}")
        sys.exit(1)
    finally:
        app.cleanup()


if __name__ == "__main__":
    main()
