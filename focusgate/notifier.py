from __future__ import annotations

import platform
import shutil
import subprocess
import sys
from typing import Protocol, TextIO

from .errors import NotificationError
from .session_clock import PhaseCompleted


class PhaseNotifier(Protocol):
    def announce(self, event: PhaseCompleted) -> None:
        ...


def completion_text(event: PhaseCompleted) -> tuple[str, str]:
    title = f"{event.completed_phase.label}阶段完成！"
    message = f"接下来：{event.next_phase.label}"
    return title, message


class Notifier:
    def __init__(self, stream: TextIO | None = None, speak: bool = False) -> None:
        self.stream = stream or sys.stdout
        self.speak_enabled = speak

    def announce(self, event: PhaseCompleted) -> None:
        title, message = completion_text(event)
        self.notify(title, message)
        if self.speak_enabled:
            self.speak(f"{title} {message}")

    def notify(self, title: str, message: str) -> None:
        sent = False
        system_name = platform.system().lower()

        try:
            if system_name == "darwin" and shutil.which("osascript"):
                script = (
                    "display notification "
                    f"\"{self._escape(message)}\" with title \"{self._escape(title)}\""
                )
                result = subprocess.run(
                    ["osascript", "-e", script],
                    check=False,
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.DEVNULL,
                )
                sent = result.returncode == 0
            elif system_name == "linux" and shutil.which("notify-send"):
                result = subprocess.run(
                    ["notify-send", "--urgency=critical", title, message],
                    check=False,
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.DEVNULL,
                )
                sent = result.returncode == 0
        except OSError:
            sent = False

        if not sent:
            try:
                self.stream.write(f"[通知] {title}: {message}\n")
                self.stream.flush()
            except (OSError, ValueError) as exc:
                raise NotificationError(f"通知无法送达：{exc}") from exc

    def speak(self, text: str) -> None:
        command = self._speech_command(text)
        if command is None:
            raise NotificationError("当前系统没有可用的语音播报命令")
        try:
            result = subprocess.run(
                command,
                check=False,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as exc:
            raise NotificationError(f"语音播报失败：{exc}") from exc
        if result.returncode != 0:
            raise NotificationError(f"语音播报失败，返回码 {result.returncode}")

    @staticmethod
    def _speech_command(text: str) -> list[str] | None:
        system_name = platform.system().lower()
        if system_name == "darwin" and shutil.which("say"):
            return ["say", text]
        if system_name == "linux":
            if shutil.which("spd-say"):
                return ["spd-say", "--wait", text]
            if shutil.which("espeak"):
                return ["espeak", text]
        return None

    @staticmethod
    def _escape(text: str) -> str:
        return text.replace("\\", "\\\\").replace('"', '\\"')
