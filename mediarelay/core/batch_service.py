from __future__ import annotations

import os
import re
import signal
import subprocess
import threading

from .models import BatchResult
from .paths import resolve_script

SUCCESS_PATTERN = re.compile(r"File has been downloaded successfully to: (.*?\.mp4)")
_ANSI_ESCAPE_RE = re.compile(r"\x1B\[[0-?]*[ -/]*[@-~]")
_CONTROL_CHAR_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_ERROR_EXCERPT_MAX_CHARS = 600
_CMD_SCRIPT_SUFFIXES = (".bat", ".cmd")
# cmd.exe has no escape for these inside a quoted argument.
_CMD_UNQUOTABLE_CHARS = ('"', "\r", "\n", "\x00")
_KILL_WAIT_SECONDS = 1.0

Command = list[str] | str


class BatchScriptError(RuntimeError):
    pass


def sanitize_output_text(value: object) -> str:
    text = str(value or "")
    if not text:
        return ""
    no_ansi = _ANSI_ESCAPE_RE.sub("", text)
    no_ctrl = _CONTROL_CHAR_RE.sub("", no_ansi)
    collapsed = no_ctrl.replace("\r\n", "\n").replace("\r", "\n")
    collapsed = re.sub(r"\n{3,}", "\n\n", collapsed)
    return collapsed.strip()


def extract_downloaded_file(text_output: str) -> str | None:
    match = SUCCESS_PATTERN.search(str(text_output or ""))
    if match and match.group(1):
        return match.group(1)
    return None


def quote_cmd_argument(value: str) -> str:
    text = str(value or "")
    if any(char in text for char in _CMD_UNQUOTABLE_CHARS):
        raise BatchScriptError("URL contains characters that cannot be passed to a batch file")
    return f'"{text}"'


def build_command_line(script: str, url: str, *, os_name: str | None = None) -> Command:
    """Command for running ``script`` with ``url`` as its only argument.

    Batch files on Windows are re-parsed by cmd.exe, where an unquoted ``&``
    or ``|`` in the URL would start a new command, so they get an explicitly
    quoted command line instead of an argv list.
    """
    platform_name = os_name if os_name is not None else os.name
    if platform_name == "nt" and str(script).lower().endswith(_CMD_SCRIPT_SUFFIXES):
        return f"{quote_cmd_argument(script)} {quote_cmd_argument(url)}"
    return [str(script), str(url)]


def _describe_command(command: Command) -> str:
    return command if isinstance(command, str) else " ".join(command)


def _error_excerpt(value: str) -> str:
    short = sanitize_output_text(value)
    if len(short) > _ERROR_EXCERPT_MAX_CHARS:
        short = f"{short[: _ERROR_EXCERPT_MAX_CHARS - 1]}..."
    return short


class BatchService:
    """Runs the external download script and turns its stdout into a BatchResult."""

    def __init__(self, script_path: str) -> None:
        self._script_path = str(script_path or "").strip()
        self._active_processes: set[subprocess.Popen[str]] = set()
        self._active_lock = threading.Lock()
        self._shutting_down = False

    @property
    def script_path(self) -> str:
        return self._script_path

    def build_command(self, url: str) -> Command:
        script = resolve_script(self._script_path)
        if not script:
            raise BatchScriptError(f"Batch file was not found: {self._script_path or '<unset>'}")
        return build_command_line(script, str(url if url is not None else ""))

    def active_process_count(self) -> int:
        with self._active_lock:
            return len(self._active_processes)

    @staticmethod
    def _kill_process_tree(process: subprocess.Popen[str]) -> None:
        if process.poll() is not None:
            return
        if os.name == "nt":
            subprocess.run(
                ["taskkill", "/F", "/T", "/PID", str(process.pid)],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                check=False,
            )
            return
        try:
            os.killpg(process.pid, signal.SIGTERM)
            process.wait(timeout=_KILL_WAIT_SECONDS)
        except ProcessLookupError:
            return
        except subprocess.TimeoutExpired:
            try:
                os.killpg(process.pid, signal.SIGKILL)
            except ProcessLookupError:
                return

    def cancel_all(self) -> None:
        with self._active_lock:
            self._shutting_down = True
            running = list(self._active_processes)
        for process in running:
            self._kill_process_tree(process)

    def _register_process(self, process: subprocess.Popen[str]) -> bool:
        with self._active_lock:
            if self._shutting_down:
                return False
            self._active_processes.add(process)
            return True

    def _unregister_process(self, process: subprocess.Popen[str]) -> None:
        with self._active_lock:
            self._active_processes.discard(process)

    def run(self, url: str) -> BatchResult:
        command = self.build_command(url)
        creationflags = subprocess.CREATE_NO_WINDOW if os.name == "nt" else 0
        try:
            process = subprocess.Popen(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                creationflags=creationflags,
                start_new_session=os.name != "nt",
            )
        except OSError as exc:
            raise BatchScriptError(str(exc)) from exc

        if not self._register_process(process):
            self._kill_process_tree(process)
            process.communicate()
            raise BatchScriptError("Batch file was stopped: application is closing")
        try:
            stdout, stderr = process.communicate()
        finally:
            self._unregister_process(process)

        if process.returncode != 0:
            detail = _error_excerpt(stderr) or _error_excerpt(stdout)
            message = f"Command failed with exit code {process.returncode}: {_describe_command(command)}"
            if detail:
                message = f"{message}\n{detail}"
            raise BatchScriptError(message)

        text_output = str(stdout or "").strip()
        return BatchResult(
            text_output=text_output,
            file_path=extract_downloaded_file(text_output),
        )
