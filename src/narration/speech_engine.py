# src/narration/speech_engine.py — v1
"""Platform speech engines driven as child processes.

``start`` spawns one process per narration and returns an opaque process
id. When the process exits, for any reason including ``stop``, the engine
reports that id to its finished listener. Listeners decide whether the
id is still the one they care about.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Callable

from pydantic import BaseModel

from pagereader.config.settings import Settings
from pagereader.core.errors import NarrationFailed

logger = logging.getLogger(__name__)

FinishedListener = Callable[[str], None]


class VoiceInfo(BaseModel):
    """One installed voice."""

    name: str
    language: str


class SpeechEngine(ABC):
    """Abstract speech backend."""

    name: str = "speech"

    def __init__(self) -> None:
        self._listener: FinishedListener | None = None

    def set_finished_listener(self, listener: FinishedListener | None) -> None:
        self._listener = listener

    def _emit_finished(self, process_id: str) -> None:
        if self._listener is not None:
            self._listener(process_id)

    @abstractmethod
    async def start(self, text: str, voice: str | None = None) -> str:
        """Begin speaking *text*. Returns the process id."""

    @abstractmethod
    async def stop(self, process_id: str) -> None:
        """Terminate a running narration. Unknown ids are ignored."""

    @abstractmethod
    async def list_voices(self) -> list[VoiceInfo]:
        """Voices installed on this machine."""


def parse_say_voices(output: str) -> list[VoiceInfo]:
    """Parse ``say -v ?`` output (``Name  en_US  # sample sentence``)."""
    voices: list[VoiceInfo] = []
    for line in output.splitlines():
        head = line.split("#", 1)[0].strip()
        if not head:
            continue
        name, _, language = head.rpartition(" ")
        if not name.strip() or not language:
            continue
        voices.append(VoiceInfo(name=name.strip(), language=language.replace("_", "-")))
    return voices


def parse_espeak_voices(output: str) -> list[VoiceInfo]:
    """Parse ``espeak-ng --voices`` output (header row, then fixed columns)."""
    voices: list[VoiceInfo] = []
    for line in output.splitlines()[1:]:
        parts = line.split()
        # Pty Language Age/Gender VoiceName File ...
        if len(parts) < 4:
            continue
        voices.append(VoiceInfo(name=parts[3], language=parts[1]))
    return voices


class SubprocessSpeechEngine(SpeechEngine):
    """Speech through a command-line synthesizer (``say``, ``espeak-ng``)."""

    def __init__(
        self,
        name: str,
        command: list[str],
        list_voices_args: list[str],
        voice_parser: Callable[[str], list[VoiceInfo]],
        voice_flag: str = "-v",
    ) -> None:
        super().__init__()
        self.name = name
        self._command = list(command)
        self._list_voices_args = list(list_voices_args)
        self._voice_parser = voice_parser
        self._voice_flag = voice_flag
        self._processes: dict[str, asyncio.subprocess.Process] = {}
        self._watchers: dict[str, asyncio.Task[None]] = {}

    async def start(self, text: str, voice: str | None = None) -> str:
        args = list(self._command)
        if voice:
            args += [self._voice_flag, voice]
        args.append(text)
        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            raise NarrationFailed(self.name, f"cannot start {self._command[0]}: {e}") from e

        process_id = uuid.uuid4().hex
        self._processes[process_id] = proc
        self._watchers[process_id] = asyncio.create_task(self._watch(process_id, proc))
        logger.debug("Started %s narration %s (pid %s)", self.name, process_id, proc.pid)
        return process_id

    async def stop(self, process_id: str) -> None:
        proc = self._processes.pop(process_id, None)
        if proc is None:
            return
        if proc.returncode is None:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
            await proc.wait()
        logger.debug("Stopped %s narration %s", self.name, process_id)

    async def list_voices(self) -> list[VoiceInfo]:
        try:
            proc = await asyncio.create_subprocess_exec(
                self._command[0],
                *self._list_voices_args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            raise NarrationFailed(self.name, f"cannot list voices: {e}") from e
        stdout, _ = await proc.communicate()
        if proc.returncode != 0:
            raise NarrationFailed(self.name, f"voice listing exited with {proc.returncode}")
        return self._voice_parser(stdout.decode("utf-8", errors="replace"))

    async def _watch(self, process_id: str, proc: asyncio.subprocess.Process) -> None:
        await proc.wait()
        self._processes.pop(process_id, None)
        self._watchers.pop(process_id, None)
        self._emit_finished(process_id)


def create_speech_engine(settings: Settings) -> SpeechEngine:
    """Instantiate the configured speech engine."""
    if settings.tts_engine == "say":
        return SubprocessSpeechEngine(
            name="say",
            command=["say"],
            list_voices_args=["-v", "?"],
            voice_parser=parse_say_voices,
        )
    if settings.tts_engine == "espeak":
        return SubprocessSpeechEngine(
            name="espeak",
            command=["espeak-ng"],
            list_voices_args=["--voices"],
            voice_parser=parse_espeak_voices,
        )
    raise ValueError(f"Unsupported TTS engine: {settings.tts_engine!r}")
