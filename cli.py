import argparse
import logging
import threading

from player.config import LOG_LEVEL, PLAYBACK_SPEEDS, SPEAK_EQUALS
from player.errors import InvalidParameters
from player.logging_setup import setup_console_logging
from player.models import DigitItem, OperatorItem, PlaybackState, ResultsHandoff, SessionStatus
from player.services.backend_client import BackendClient
from player.services.loader import QuestionSetLoader
from player.services.narrator import Narrator, operator_symbol
from player.services.scheduler import ThreadScheduler, VirtualScheduler
from player.services.session_controller import SessionController
from player.services.speech import SilentSpeech, SpeechBackend, build_speech_backend
from player.utils import format_countdown, parse_set_ids


class EchoSpeech(SpeechBackend):
    """Prints every utterance before handing it to the real backend."""

    def __init__(self, inner: SpeechBackend, clock):
        self.inner = inner
        self.clock = clock

    def voices(self) -> list[str]:
        return self.inner.voices()

    def speak(self, text: str, rate: float = 1.0, voice: str | None = None) -> None:
        print(f"{self.clock():7.2f}s  say: {text}")
        self.inner.speak(text, rate, voice)

    def cancel(self) -> None:
        self.inner.cancel()


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Play abacus drill question sets")
    parser.add_argument("level", help="Level identifier, e.g. level-1")
    parser.add_argument("week", help="Week number")
    parser.add_argument(
        "--sets",
        required=True,
        help="Question set id or comma-separated ids (plays in this order)",
    )
    parser.add_argument("--mute", action="store_true", help="Start muted")
    parser.add_argument(
        "--speed",
        type=float,
        default=1.0,
        choices=PLAYBACK_SPEEDS,
        help="Narration speed",
    )
    parser.add_argument(
        "--speak-equals",
        action="store_true",
        default=SPEAK_EQUALS,
        help="Say 'equals' at the end of each question",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Run the timeline on a virtual clock without audio",
    )
    return parser.parse_args()


def render_reveal(scheduler, previous: dict[str, int], state: PlaybackState) -> None:
    revealed = len(state.visible_digits) + len(state.visible_operators)
    if state.current_question_index != previous.get("question"):
        previous["question"] = state.current_question_index
        previous["revealed"] = 0
        print(
            f"{scheduler.now():7.2f}s  question {state.current_question_index + 1}"
            f" (set {state.current_set_index + 1}) {format_countdown(state.time_remaining)}"
        )
    if revealed > previous.get("revealed", 0):
        previous["revealed"] = revealed
        tokens = [str(item.display or item.value) for item in state.visible_digits]
        operators = [operator_symbol(item.value) for item in state.visible_operators]
        print(f"{scheduler.now():7.2f}s  board: {' '.join(tokens)}  ops: {' '.join(operators)}")


def print_results(results: ResultsHandoff) -> None:
    print()
    print(f"Answers for level {results.level}, week {results.week}")
    for question_set in results.question_sets:
        print(f"  {question_set.name} ({question_set.type})")
        for question in results.questions:
            if question.set_id != question_set.id:
                continue
            text = question.formatted_question or " ".join(
                str(item.value)
                for item in question.display_sequence
                if isinstance(item, (DigitItem, OperatorItem))
            )
            print(f"    {question.question_in_set_index + 1:>3}. {text} = {question.answer}")


def main() -> None:
    args = parse_args()
    setup_console_logging(LOG_LEVEL)
    log = logging.getLogger("player.cli")

    try:
        set_ids = parse_set_ids(args.sets)
    except InvalidParameters as exc:
        raise SystemExit(str(exc))

    scheduler = VirtualScheduler() if args.dry_run else ThreadScheduler()
    backend = SilentSpeech() if args.dry_run else build_speech_backend()
    narrator = Narrator(
        EchoSpeech(backend, scheduler.now),
        muted=args.mute,
        rate=args.speed,
        speak_equals=args.speak_equals,
    )

    finished = threading.Event()
    handoff: list[ResultsHandoff] = []

    def on_navigate(results: ResultsHandoff) -> None:
        handoff.append(results)
        finished.set()

    client = BackendClient()
    controller = SessionController(
        QuestionSetLoader(client),
        scheduler,
        narrator,
        on_navigate=on_navigate,
        spawn=lambda target, *spawn_args: target(*spawn_args),
    )
    seen: dict[str, int] = {}
    controller.store.subscribe(lambda state: render_reveal(scheduler, seen, state))

    try:
        controller.open(args.level, args.week, set_ids)
        if controller.status == SessionStatus.ERROR:
            raise SystemExit(controller.error)
        if controller.status == SessionStatus.EMPTY:
            raise SystemExit("No questions found for this selection")

        if args.dry_run:
            scheduler.run_until_idle()
        else:
            while not finished.wait(0.5):
                pass
    except KeyboardInterrupt:
        log.info("Interrupted")
    finally:
        controller.close()
        scheduler.shutdown()
        client.close()

    if handoff:
        print_results(handoff[0])


if __name__ == "__main__":
    main()
