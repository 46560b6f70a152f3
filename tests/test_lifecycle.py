import unittest

from abz_submit.lifecycle import ShutdownHooks
from abz_submit.messages import MessageLog
from abz_submit.models import Message


class TestShutdownHooks(unittest.TestCase):
    def test_hooks_run_once_and_failures_do_not_stop_others(self) -> None:
        calls = []

        def broken() -> None:
            calls.append("broken")
            raise RuntimeError("boom")

        hooks = ShutdownHooks(register_atexit=False)
        hooks.add_shutdown_hook(broken)
        hooks.add_shutdown_hook(lambda: calls.append("ok"))

        with self.assertLogs("abz_submit.lifecycle", level="ERROR"):
            hooks.run()
        hooks.run()

        self.assertEqual(calls, ["broken", "ok"])


class TestMessageLog(unittest.TestCase):
    def test_messages_are_returned_as_a_copy(self) -> None:
        log = MessageLog()
        log.add_message(Message(category="Analysis", text="Failed"))
        snapshot = log.messages
        snapshot.clear()
        self.assertEqual(len(log), 1)
        self.assertEqual(log.messages[0].text, "Failed")


if __name__ == "__main__":
    unittest.main()
