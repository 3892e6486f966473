import os
import time

import pytest

from mediarelay.app_controller import AppController
from mediarelay.bridge import BATCH_COMPLETE, SHOW_SAVE_DIALOG
from mediarelay.core.batch_service import BatchService
from mediarelay.core.config import default_config, load_config
from mediarelay.core.models import SessionState

pytestmark = pytest.mark.skipif(os.name == "nt", reason="uses /bin/sh scripts")


class SavePromptStub:
    def __init__(self, answer):
        self.answer = answer
        self.calls = []

    def __call__(self, parent, default_path, *, extension, title):
        self.calls.append((default_path, extension, title))
        return self.answer


@pytest.fixture
def build_controller(qapp, storage_dir, wait_until, pump_events):
    created = []

    def _build(script, *, answer=None):
        config = default_config()
        config.script_path = str(script)
        prompt = SavePromptStub(answer)
        controller = AppController(
            qapp,
            config=config,
            service=BatchService(str(script)),
            save_prompt=prompt,
        )
        replies = []
        controller.bridge.on(BATCH_COMPLETE, replies.append)
        created.append(controller)
        return controller, replies, prompt

    yield _build
    for controller in created:
        wait_until(lambda: controller.running_batch_count() == 0)
        controller.window.deleteLater()
    pump_events(0.05)


def _console(controller):
    return controller.window.console_output.toPlainText()


def test_success_reveals_download_button(build_controller, make_script, wait_until):
    script = make_script('echo "File has been downloaded successfully to: /videos/$1.mp4"\n')
    controller, replies, _prompt = build_controller(script)
    window = controller.window

    window.url_input.setText("clip")
    window.run_button.click()

    assert wait_until(lambda: len(replies) == 1)
    assert replies[0] == {
        "response": "File has been downloaded successfully to: /videos/clip.mp4",
        "file": "/videos/clip.mp4",
    }
    assert window.session_state is SessionState.RESULT_SHOWN
    assert not window.download_button.isHidden()
    assert "Downloaded file path: /videos/clip.mp4" in _console(controller)


def test_unmatched_output_replies_without_file(build_controller, make_script, wait_until):
    script = make_script('echo "Something else happened"\n')
    controller, replies, _prompt = build_controller(script)

    controller.window.run_button.click()

    assert wait_until(lambda: len(replies) == 1)
    assert replies[0] == {"response": "Something else happened", "file": None}
    assert controller.window.download_button.isHidden()
    assert "Unable to extract downloaded file path." in _console(controller)


def test_script_failure_never_replies(build_controller, make_script, wait_until, pump_events):
    script = make_script('echo "network down" >&2\nexit 1\n')
    controller, replies, _prompt = build_controller(script)

    controller.window.run_button.click()

    assert wait_until(lambda: "Error executing batch file:" in _console(controller))
    assert wait_until(lambda: controller.running_batch_count() == 0)
    pump_events(0.2)
    assert replies == []
    assert controller.window.session_state is SessionState.AWAITING_RESULT
    assert controller.window.download_button.isHidden()


def test_two_requests_both_answered(build_controller, make_script, wait_until):
    script = make_script(
        'if [ "$1" = "slow" ]; then sleep 0.3; fi\n'
        'echo "File has been downloaded successfully to: /videos/$1.mp4"\n'
    )
    controller, replies, _prompt = build_controller(script)
    window = controller.window

    window.url_input.setText("slow")
    window.run_button.click()
    window.url_input.setText("fast")
    window.run_button.click()

    assert wait_until(lambda: len(replies) == 2)
    assert sorted(reply["file"] for reply in replies) == ["/videos/fast.mp4", "/videos/slow.mp4"]


def test_save_dialog_cancel_is_silent(build_controller, make_script, pump_events):
    script = make_script("echo ok\n")
    controller, _replies, prompt = build_controller(script, answer=None)
    window = controller.window
    controller.bridge.reply(BATCH_COMPLETE, {"response": "ok", "file": "/videos/a.mp4"})
    window.download_button.click()
    state_after_click = window.session_state
    before = _console(controller)

    pump_events(0.05)

    assert prompt.calls == [("/videos/a.mp4", "mp4", "Save video")]
    assert _console(controller) == before
    assert window.session_state is state_after_click
    assert "Selected file path" not in _console(controller)


def test_save_dialog_confirm_logs_selection(build_controller, make_script):
    script = make_script("echo ok\n")
    controller, _replies, prompt = build_controller(script, answer="/home/me/keep.mp4")

    controller.bridge.send(SHOW_SAVE_DIALOG, "/videos/a.mp4")

    assert prompt.calls == [("/videos/a.mp4", "mp4", "Save video")]
    assert "Selected file path: /home/me/keep.mp4" in _console(controller)


def test_script_output_logged_once(build_controller, make_script, wait_until):
    script = make_script('echo "step one"\necho "step two"\n')
    controller, replies, _prompt = build_controller(script)

    controller.window.run_button.click()

    assert wait_until(lambda: len(replies) == 1)
    console = _console(controller)
    assert "Batch complete: step one\nstep two" in console
    assert console.count("step one") == 1


def test_close_persists_geometry(build_controller, make_script):
    script = make_script("echo ok\n")
    controller, _replies, _prompt = build_controller(script)
    controller.window.resize(640, 480)

    assert controller._on_close_request() is True

    saved = load_config()
    assert saved.script_path == str(script)
    assert saved.window_geometry


def test_close_while_script_running_stops_it(build_controller, make_script, wait_until, pump_events):
    script = make_script('sleep 5 &\nwait\necho "File has been downloaded successfully to: /videos/late.mp4"\n')
    controller, replies, _prompt = build_controller(script)
    controller.window.show()

    controller.window.run_button.click()
    assert wait_until(lambda: controller.batch_service.active_process_count() == 1)
    assert len(controller._running_batch_threads()) == 1

    started = time.monotonic()
    controller.window.close()

    assert time.monotonic() - started < 3.0
    assert controller.batch_service.active_process_count() == 0
    assert controller._running_batch_threads() == []
    pump_events(0.2)
    assert replies == []
