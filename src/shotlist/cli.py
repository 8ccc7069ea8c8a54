"""Interactive REPL over a RecordStore, standing in for the editor UI."""

from __future__ import annotations

import asyncio
import logging
import shlex
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from shotlist.codec import DecodeError
from shotlist.gateway import ArtifactGateway, DirectorySink, file_source
from shotlist.records import EDITABLE_FIELDS

if TYPE_CHECKING:
    from shotlist.records import Record
    from shotlist.store import RecordStore

logger = logging.getLogger(__name__)

HELP = """\
ls                      列出全部分镜
show N                  查看第 N 条
add [N]                 在第 N 条后添加（缺省：末尾）
set N FIELD TEXT        修改 title / positive / negative
rm N                    删除第 N 条
mv A B                  把第 A 条移动到第 B 位
export [DIR]            导出 .txt（JSON v2）
import PATH             导入 .txt（支持 v1 / v2），覆盖当前内容
exit                    退出"""


class UsageError(Exception):
    """Malformed REPL command."""


class ShotlistCLI:
    """Reads commands from stdin, applies them to the store, prints results."""

    def __init__(self, store: RecordStore, export_dir: Path) -> None:
        self.store = store
        self.gateway = ArtifactGateway(store)
        self.export_dir = export_dir
        self._running = False

    async def run(self) -> None:
        self._running = True
        loop = asyncio.get_running_loop()

        print("SD 分镜 Prompt 管理器 (type 'help' for commands, 'exit' to quit)")
        print("-" * 48)
        print(self._format_list())

        while self._running:
            try:
                line = await loop.run_in_executor(None, self._read_input)
            except (EOFError, KeyboardInterrupt):
                print("\nBye!")
                break

            if line is None or line.strip().lower() in ("exit", "quit"):
                print("Bye!")
                break
            if not line.strip():
                continue

            print(await self.handle(line))

    def stop(self) -> None:
        self._running = False

    def _read_input(self) -> str | None:
        try:
            sys.stdout.write("\n> ")
            sys.stdout.flush()
            raw = sys.stdin.buffer.readline()
            if not raw:
                return None
            return raw.decode("utf-8", errors="replace").rstrip("\n")
        except EOFError:
            return None

    # ── Command dispatch ─────────────────────────────────────

    async def handle(self, line: str) -> str:
        """Run one command line and return the text to show the user."""
        try:
            args = shlex.split(line)
        except ValueError as e:
            return f"命令解析失败：{e}"
        if not args:
            return ""
        cmd, rest = args[0].lower(), args[1:]
        try:
            if cmd in ("ls", "list"):
                return self._format_list()
            if cmd == "show":
                return self._format_record(self._position(rest, 0), full=True)
            if cmd == "add":
                return self._add(rest)
            if cmd == "set":
                return self._set(rest)
            if cmd == "rm":
                return self._remove(rest)
            if cmd == "mv":
                return self._move(rest)
            if cmd == "export":
                return self._export(rest)
            if cmd == "import":
                return await self._import(rest)
            if cmd == "help":
                return HELP
        except UsageError as e:
            return f"用法错误：{e}"
        return f"未知命令：{cmd}（输入 help 查看帮助）"

    def _add(self, rest: list[str]) -> str:
        index = self._position(rest, 0) if rest else len(self.store) - 1
        records = self.store.insert_after(index)
        return f"已添加 #{index + 2}：{records[index + 1].title}"

    def _set(self, rest: list[str]) -> str:
        if len(rest) < 3:
            raise UsageError("set N FIELD TEXT")
        index = self._position(rest, 0)
        field = rest[1].lower()
        if field not in EDITABLE_FIELDS:
            raise UsageError(f"字段只能是 {' / '.join(EDITABLE_FIELDS)}")
        self.store.update(index, **{field: " ".join(rest[2:])})
        return self._format_record(index, full=True)

    def _remove(self, rest: list[str]) -> str:
        index = self._position(rest, 0)
        if len(self.store) == 1:
            return "至少保留一条分镜，无法删除最后一条。"
        title = self.store[index].title
        self.store.remove(index)
        return f"已删除 #{index + 1}：{title}"

    def _move(self, rest: list[str]) -> str:
        src, dst = self._position(rest, 0), self._position(rest, 1)
        self.store.move(src, dst)
        return self._format_list()

    def _export(self, rest: list[str]) -> str:
        sink = DirectorySink(Path(rest[0]).expanduser() if rest else self.export_dir)
        try:
            self.gateway.export_to(sink)
        except OSError as e:
            return f"导出失败：无法写入 {sink.directory}（{e.strerror or e}）"
        return f"已导出为 {sink.last_path}（JSON v2 格式）。"

    async def _import(self, rest: list[str]) -> str:
        if not rest:
            raise UsageError("import PATH")
        path = Path(rest[0]).expanduser()
        try:
            result = await self.gateway.import_from(file_source(path))
        except OSError as e:
            return f"导入失败：无法读取文件 {path}（{e.strerror or e}）"
        except DecodeError as e:
            return f"导入失败：{e.message}"
        return result.message

    # ── Formatting helpers ───────────────────────────────────

    def _position(self, rest: list[str], i: int) -> int:
        """Parse a 1-based position argument into a valid 0-based index."""
        if len(rest) <= i:
            raise UsageError("缺少序号")
        try:
            pos = int(rest[i])
        except ValueError:
            raise UsageError(f"序号必须是整数：{rest[i]}") from None
        if not 1 <= pos <= len(self.store):
            raise UsageError(f"序号超出范围（1-{len(self.store)}）：{pos}")
        return pos - 1

    def _format_list(self) -> str:
        return "\n".join(self._format_record(i) for i in range(len(self.store)))

    def _format_record(self, index: int, full: bool = False) -> str:
        record: Record = self.store[index]
        if not full:
            return f"#{index + 1} {record.title}"
        return (
            f"#{index + 1} {record.title}\n"
            f"  Positive: {record.positive or '(空)'}\n"
            f"  Negative: {record.negative or '(空)'}"
        )
