from __future__ import annotations

import contextlib
import io
import os
from pathlib import Path
import unittest
from unittest import mock

from focusgate import cli
from focusgate.errors import PersistenceError
from focusgate.store import SQLiteStateStore
from focusgate.tests.test_helpers import local_tmp_dir


def run_cli(db_path: Path, *args: str) -> tuple[int, str, str]:
    out = io.StringIO()
    err = io.StringIO()
    with mock.patch.dict(os.environ, {"FOCUSGATE_NOTIFY": "off"}), contextlib.redirect_stdout(
        out
    ), contextlib.redirect_stderr(err):
        code = cli.main(["--db", str(db_path), *args])
    return code, out.getvalue(), err.getvalue()


class TestCLI(unittest.TestCase):
    def test_format_countdown(self) -> None:
        self.assertEqual(cli.format_countdown(25 * 60_000), "25:00")
        self.assertEqual(cli.format_countdown(61_999), "01:01")
        self.assertEqual(cli.format_countdown(3_600_000 + 5_000), "01:00:05")
        self.assertEqual(cli.format_countdown(-10), "00:00")

    def test_state_survives_between_invocations(self) -> None:
        with local_tmp_dir() as tmp:
            db_path = tmp / "focusgate.sqlite"

            code, out, _ = run_cli(db_path, "status")
            self.assertEqual(code, 0)
            self.assertIn("阶段：工作（已暂停）", out)
            self.assertIn("剩余：25:00 / 25:00", out)

            code, out, _ = run_cli(db_path, "start")
            self.assertEqual(code, 0)
            self.assertIn("运行中", out)

            code, out, _ = run_cli(db_path, "status")
            self.assertIn("运行中", out)

            code, out, _ = run_cli(db_path, "tick")
            self.assertEqual(code, 0)
            self.assertNotIn("阶段已完成", out)

            code, out, _ = run_cli(db_path, "stop")
            self.assertIn("已暂停", out)

            record = SQLiteStateStore(db_path).load() or {}
            self.assertFalse(record["running"])
            self.assertIsNone(record["started_at_ms"])

            code, out, _ = run_cli(db_path, "reset")
            self.assertIn("已完成工作：0 次", out)

    def test_settings(self) -> None:
        with local_tmp_dir() as tmp:
            db_path = tmp / "focusgate.sqlite"

            code, out, _ = run_cli(db_path, "settings")
            self.assertEqual(code, 0)
            self.assertIn("工作时长: 25 分钟", out)

            code, out, _ = run_cli(db_path, "settings", "--work", "40", "--interval", "3")
            self.assertEqual(code, 0)
            self.assertIn("工作时长: 40 分钟", out)
            self.assertIn("长休息间隔: 3 次", out)

            code, _, err = run_cli(db_path, "settings", "--work", "0")
            self.assertEqual(code, 2)
            self.assertIn("设置无效", err)

            code, out, _ = run_cli(db_path, "status")
            self.assertIn("剩余：40:00 / 40:00", out)

    def test_sites_gate_and_check(self) -> None:
        with local_tmp_dir() as tmp:
            db_path = tmp / "focusgate.sqlite"

            code, out, _ = run_cli(db_path, "sites", "list")
            self.assertEqual(out.split(), ["instagram.com", "youtube.com"])

            code, out, _ = run_cli(db_path, "sites", "add", "https://www.twitch.tv/")
            self.assertIn("twitch.tv", out.split())

            code, out, _ = run_cli(db_path, "sites", "remove", "instagram.com")
            self.assertEqual(out.split(), ["youtube.com", "twitch.tv"])

            code, _, _ = run_cli(db_path, "check", "https://www.twitch.tv/somebody")
            self.assertEqual(code, 1)
            code, _, _ = run_cli(db_path, "check", "https://example.org/")
            self.assertEqual(code, 0)

            code, out, _ = run_cli(db_path, "gate", "off")
            self.assertIn("已关闭", out)
            code, _, _ = run_cli(db_path, "check", "https://www.twitch.tv/somebody")
            self.assertEqual(code, 0)

    def test_emptied_site_list_blocks_nothing(self) -> None:
        with local_tmp_dir() as tmp:
            db_path = tmp / "focusgate.sqlite"

            run_cli(db_path, "sites", "remove", "instagram.com")
            code, out, _ = run_cli(db_path, "sites", "remove", "youtube.com")
            self.assertEqual(code, 0)
            self.assertIn("拦截列表为空", out)

            code, out, _ = run_cli(db_path, "sites", "list")
            self.assertIn("拦截列表为空", out)
            code, _, _ = run_cli(db_path, "check", "https://instagram.com/x")
            self.assertEqual(code, 0)

    def test_unavailable_store_falls_back_to_memory(self) -> None:
        with local_tmp_dir() as tmp, mock.patch(
            "focusgate.driver.SQLiteStateStore", side_effect=PersistenceError("磁盘只读")
        ):
            code, out, err = run_cli(tmp / "focusgate.sqlite", "start")
        self.assertEqual(code, 0)
        self.assertIn("运行中", out)
        self.assertIn("状态库不可用", err)

    def test_unknown_command_exits_with_usage_error(self) -> None:
        with self.assertRaises(SystemExit) as exc, contextlib.redirect_stderr(io.StringIO()):
            cli.main(["launch"])
        self.assertEqual(exc.exception.code, 2)


if __name__ == "__main__":
    unittest.main()
