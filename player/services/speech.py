"""Text-to-speech backends for the narrator.

The narrator only needs ``speak``/``cancel``/``voices``; where no speech
output exists the player runs on ``SilentSpeech`` instead of checking for
availability everywhere.
"""
from __future__ import annotations

import hashlib
import logging
import shutil
import subprocess
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path

from gtts import gTTS, gTTSError

from player import config
from player.errors import SpeechUnavailable

log = logging.getLogger(__name__)


# Google accents exposed as voices; the value is the gTTS top-level domain.
GTTS_VOICES = {
    "Google US English": "com",
    "Google UK English": "co.uk",
    "Google Australian English": "com.au",
    "Google Indian English": "co.in",
}


class SpeechBackend(ABC):
    """A single exclusive speech channel."""

    @abstractmethod
    def speak(self, text: str, rate: float = 1.0, voice: str | None = None) -> None:
        """Start speaking ``text``. Must not block until playback ends."""

    @abstractmethod
    def cancel(self) -> None:
        """Stop whatever is being spoken."""

    def voices(self) -> list[str]:
        return []


class SilentSpeech(SpeechBackend):
    """No-op backend used when the runtime cannot speak."""

    def speak(self, text: str, rate: float = 1.0, voice: str | None = None) -> None:
        return None

    def cancel(self) -> None:
        return None


class GTTSSpeech(SpeechBackend):
    """Renders utterances with gTTS and plays them with an mp3 player process."""

    def __init__(
        self,
        cache_dir: Path = config.NARRATION_CACHE_DIR,
        player: str = config.NARRATION_PLAYER,
        lang: str = config.NARRATION_LANG,
    ):
        player_path = shutil.which(player)
        if player_path is None:
            raise SpeechUnavailable(f"Audio player '{player}' not found")
        self.player_path = player_path
        self.cache_dir = Path(cache_dir)
        self.lang = lang
        self._lock = threading.Lock()
        self._generation = 0
        self._process: subprocess.Popen | None = None
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def voices(self) -> list[str]:
        return list(GTTS_VOICES)

    def speak(self, text: str, rate: float = 1.0, voice: str | None = None) -> None:
        with self._lock:
            self._generation += 1
            generation = self._generation
            self._stop_process()
        self._start_worker(generation, text, rate, voice)

    def cancel(self) -> None:
        with self._lock:
            self._generation += 1
            self._stop_process()

    def cached_path(self, text: str, voice: str | None) -> Path:
        tld = GTTS_VOICES.get(voice or "", "com")
        digest = hashlib.md5(f"{self.lang}|{tld}|{text}".encode("utf-8")).hexdigest()
        return self.cache_dir / f"{digest}.mp3"

    def _render(self, text: str, voice: str | None) -> Path:
        path = self.cached_path(text, voice)
        if path.exists():
            return path
        tld = GTTS_VOICES.get(voice or "", "com")
        # overlapping renders of the same text each write their own file
        with tempfile.NamedTemporaryFile(
            dir=self.cache_dir, prefix=path.stem, suffix=".part", delete=False
        ) as tmp:
            tmp_path = Path(tmp.name)
        try:
            gTTS(text=text, lang=self.lang, tld=tld).save(str(tmp_path))
            tmp_path.replace(path)
        finally:
            tmp_path.unlink(missing_ok=True)
        return path

    def _start_worker(self, *args) -> None:
        # gTTS needs a network round trip; never block the timer thread on it
        thread = threading.Thread(
            target=self._render_and_play,
            args=args,
            name="narration",
            daemon=True,
        )
        thread.start()

    def _player_command(self, path: Path, rate: float) -> list[str]:
        # mpg123 --pitch speeds playback up or down; 0 is neutral
        return [self.player_path, "-q", "--pitch", f"{rate - 1:.2f}", str(path)]

    def _render_and_play(
        self, generation: int, text: str, rate: float, voice: str | None
    ) -> None:
        try:
            path = self._render(text, voice)
        except (gTTSError, OSError) as exc:
            log.warning("Failed to render narration %r: %s", text, exc)
            return

        with self._lock:
            if generation != self._generation:
                # cancelled or superseded while rendering
                return
            try:
                self._process = subprocess.Popen(
                    self._player_command(path, rate),
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.DEVNULL,
                )
            except OSError as exc:
                log.warning("Failed to start audio player: %s", exc)
                self._process = None

    def _stop_process(self) -> None:
        process = self._process
        self._process = None
        if process is None or process.poll() is not None:
            return
        process.terminate()
        try:
            process.wait(timeout=1)
        except subprocess.TimeoutExpired:
            process.kill()


def build_speech_backend(backend: str = config.NARRATION_BACKEND) -> SpeechBackend:
    """Return the configured backend, degrading to silence when unavailable."""
    if backend == "silent":
        return SilentSpeech()
    if backend != "gtts":
        log.warning("Unknown narration backend %r; narration disabled", backend)
        return SilentSpeech()
    try:
        return GTTSSpeech()
    except (SpeechUnavailable, OSError) as exc:
        log.info("Speech output unavailable, running silently: %s", exc)
        return SilentSpeech()
