from __future__ import annotations

import argparse
from dataclasses import replace
import os
from pathlib import Path
import sys

from .blocklist import BlockList
from .config import AppConfig
from .driver import SessionDriver, StateSnapshot, driver_from_config
from .errors import InvalidConfigError
from .logs import setup_logging
from .session_clock import FIELD_LABELS, Durations
from .store import MemoryStateStore


def format_countdown(ms: int) -> str:
    total = max(0, ms) // 1000
    minutes, sec = divmod(total, 60)
    hours, minutes = divmod(minutes, 60)
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{sec:02d}"
    return f"{minutes:02d}:{sec:02d}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="focusgate",
        description="FocusGate：可断点恢复的番茄钟与网站拦截",
    )
    parser.add_argument(
        "--db",
        default=None,
        help="SQLite 状态库路径（默认读取 FOCUSGATE_DB，否则为 focusgate/data/focusgate.sqlite）",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="输出调试日志")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("status", help="查看当前计时状态")
    subparsers.add_parser("start", help="开始或继续当前阶段")
    subparsers.add_parser("stop", help="暂停当前阶段")
    subparsers.add_parser("reset", help="重置为工作阶段并清零计数")
    subparsers.add_parser("tick", help="检查阶段是否到时（适合由 cron 定期调用）")

    settings_parser = subparsers.add_parser("settings", help="查看或修改时长设置")
    settings_parser.add_argument("--work", dest="work_minutes", type=int, default=None, help="工作时长（分钟，1-60）")
    settings_parser.add_argument(
        "--short-break",
        dest="short_break_minutes",
        type=int,
        default=None,
        help="短休息时长（分钟，1-30）",
    )
    settings_parser.add_argument(
        "--long-break",
        dest="long_break_minutes",
        type=int,
        default=None,
        help="长休息时长（分钟，1-60）",
    )
    settings_parser.add_argument(
        "--interval",
        dest="long_break_interval",
        type=int,
        default=None,
        help="每完成几次工作后长休息（2-10）",
    )

    sites_parser = subparsers.add_parser("sites", help="管理拦截网站列表")
    sites_sub = sites_parser.add_subparsers(dest="sites_command", required=True)
    sites_sub.add_parser("list", help="列出拦截网站")
    add_parser = sites_sub.add_parser("add", help="添加拦截网站")
    add_parser.add_argument("website")
    remove_parser = sites_sub.add_parser("remove", help="移除拦截网站")
    remove_parser.add_argument("website")

    gate_parser = subparsers.add_parser("gate", help="开启或关闭网站拦截")
    gate_parser.add_argument("state", choices=["on", "off", "status"])

    check_parser = subparsers.add_parser("check", help="检查某个网址是否会被拦截")
    check_parser.add_argument("url")

    serve_parser = subparsers.add_parser("serve", help="启动本地 HTTP 控制接口")
    serve_parser.add_argument("--host", default="127.0.0.1", help="监听地址")
    serve_parser.add_argument("--port", type=int, default=8765, help="监听端口")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = AppConfig.from_env()
    if args.db:
        config = replace(config, db_path=Path(args.db))
    level = "DEBUG" if args.verbose else (config.log_level if os.getenv("FOCUSGATE_LOG_LEVEL") else "WARNING")
    setup_logging(level, config.log_file)

    if args.command == "serve":
        return _handle_serve(args, config)

    driver = _open_driver(config)
    try:
        if args.command == "status":
            return _print_state(driver.get_state())
        if args.command == "start":
            return _print_state(driver.start())
        if args.command == "stop":
            return _print_state(driver.stop())
        if args.command == "reset":
            return _print_state(driver.reset())
        if args.command == "tick":
            return _handle_tick(driver)
        if args.command == "settings":
            return _handle_settings(args, driver)
        if args.command == "sites":
            return _handle_sites(args, BlockList(driver.store))
        if args.command == "gate":
            return _handle_gate(args, BlockList(driver.store))
        if args.command == "check":
            return _handle_check(args, BlockList(driver.store))
    finally:
        driver.close()

    parser.print_help()
    return 2


def _open_driver(config: AppConfig) -> SessionDriver:
    # Each CLI call is a fresh process; ticks come from `focusgate tick`.
    driver = driver_from_config(config, with_scheduler=False)
    if isinstance(driver.store, MemoryStateStore):
        print("状态库不可用，本次操作不会被保存。", file=sys.stderr)
    return driver


def _print_state(snapshot: StateSnapshot) -> int:
    state_text = "运行中" if snapshot.running else "已暂停"
    print(f"阶段：{snapshot.phase.label}（{state_text}）")
    print(f"剩余：{format_countdown(snapshot.remaining_ms)} / {format_countdown(snapshot.total_ms)}")
    print(f"进度：{snapshot.progress:.0%}")
    print(f"已完成工作：{snapshot.completed_count} 次")
    return 0


def _print_durations(durations: Durations) -> None:
    values = durations.to_dict()
    for key, label in FIELD_LABELS.items():
        unit = "次" if key == "long_break_interval" else "分钟"
        print(f"{label}: {values[key]} {unit}")


def _handle_tick(driver: SessionDriver) -> int:
    if driver.tick():
        print("阶段已完成。")
    return _print_state(driver.get_state())


def _handle_settings(args: argparse.Namespace, driver: SessionDriver) -> int:
    changes = {
        key: getattr(args, key)
        for key in FIELD_LABELS
        if getattr(args, key) is not None
    }
    if not changes:
        _print_durations(driver.durations())
        return 0

    try:
        durations = driver.update_settings(changes)
    except InvalidConfigError as exc:
        print(f"设置无效：{exc}", file=sys.stderr)
        return 2
    print("设置已更新。")
    _print_durations(durations)
    return 0


def _handle_sites(args: argparse.Namespace, blocklist: BlockList) -> int:
    if args.sites_command == "add":
        try:
            websites = blocklist.add(args.website)
        except InvalidConfigError as exc:
            print(str(exc), file=sys.stderr)
            return 2
    elif args.sites_command == "remove":
        websites = blocklist.remove(args.website)
    else:
        websites = blocklist.websites()

    if not websites:
        print("拦截列表为空。")
        return 0
    for site in websites:
        print(site)
    return 0


def _handle_gate(args: argparse.Namespace, blocklist: BlockList) -> int:
    if args.state == "on":
        blocklist.set_enabled(True)
    elif args.state == "off":
        blocklist.set_enabled(False)
    print("网站拦截：" + ("已开启" if blocklist.enabled() else "已关闭"))
    return 0


def _handle_check(args: argparse.Namespace, blocklist: BlockList) -> int:
    if blocklist.should_redirect(args.url):
        print(f"会被拦截：{args.url}")
        return 1
    print(f"不会被拦截：{args.url}")
    return 0


def _handle_serve(args: argparse.Namespace, config: AppConfig) -> int:
    try:
        import uvicorn
    except ImportError as exc:
        print(f"启动失败：缺少依赖 uvicorn。{exc}", file=sys.stderr)
        return 2

    from .api.app import create_app

    app = create_app(driver=driver_from_config(config), config=config)
    uvicorn.run(app, host=args.host, port=args.port, log_level="warning")
    return 0
