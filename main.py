from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional

from dotenv import load_dotenv

from models.mode import Mode
from models.options import GeneratorOptions
from overlay import build_overlay
from runtime.recorder import AccessRecorder
from server.web import AssetServer
from stores import get_store

logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def load_include_list(path: str | Path) -> List[str]:
    """Read an include list: a JSON export (``files`` key) or one path per line."""
    source = Path(path)
    text = source.read_text(encoding="utf-8")
    if source.suffix == ".json":
        data = json.loads(text)
        files = data.get("files", []) if isinstance(data, dict) else data
        if not isinstance(files, list) or not all(isinstance(f, str) for f in files):
            raise ValueError(f"{source}: expected a list of paths under 'files'")
        return files
    out: List[str] = []
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        out.append(line)
    return out


def save_include_list(path: str | Path, files: Iterable[str]) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as handle:
        for entry in files:
            handle.write(entry + "\n")


async def run(
    root: str,
    mode: Mode,
    *,
    include_file: Optional[str],
    save_list: Optional[str],
    host: str,
    port: int,
):
    store = get_store("local", root=root)
    options = GeneratorOptions.from_env()
    recorder: AccessRecorder | None = None
    include_list: List[str] = []
    if mode is Mode.DISCOVERY:
        recorder = AccessRecorder()
        recorder.start()
    elif include_file:
        include_list = load_include_list(include_file)
        logger.info("Loaded %d include entries from %s", len(include_list), include_file)
    else:
        logger.warning("Filter mode without an include list: only '/' is visible")
    if save_list and recorder is None:
        logger.warning("Ignoring save list %s: nothing is recorded in filter mode", save_list)

    overlay = build_overlay(store, mode, recorder=recorder, include_list=include_list)
    server = AssetServer(overlay, recorder=recorder, options=options, host=host, port=port)
    try:
        await server.start()
        stopper = asyncio.Event()
        await stopper.wait()
    except asyncio.CancelledError:
        pass
    finally:
        await server.stop()
        if recorder is not None:
            if save_list:
                files = await recorder.snapshot()
                save_include_list(save_list, files)
                logger.info("Saved %d discovered paths to %s", len(files), save_list)
            await recorder.stop()


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="filterdir",
        description="Serve a directory while discovering or filtering the files it uses.",
    )
    p.add_argument("root", help="Directory to serve.")
    p.add_argument(
        "--mode",
        choices=[m.value for m in Mode],
        default=os.getenv("FILTERDIR_MODE", Mode.DISCOVERY.value),
        help="discovery records every accessed path; filter only exposes the include list.",
    )
    p.add_argument(
        "--include-file",
        default=os.getenv("FILTERDIR_INCLUDE_FILE"),
        help="Include list for filter mode (text, one path per line, or JSON export).",
    )
    p.add_argument(
        "--save-list",
        default=os.getenv("FILTERDIR_SAVE_LIST"),
        help="Write the discovered paths here on shutdown (discovery mode).",
    )
    p.add_argument("--host", default=os.getenv("FILTERDIR_HOST", "127.0.0.1"))
    p.add_argument("--port", type=int, default=int(os.getenv("FILTERDIR_PORT", "8080")))
    p.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=os.getenv("FILTERDIR_LOG_LEVEL", "INFO"),
        help="Logging level (DEBUG shows every recorded or filtered path).",
    )
    return p


def main(argv: Optional[List[str]] = None):
    load_dotenv()
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        asyncio.run(
            run(
                args.root,
                Mode(args.mode),
                include_file=args.include_file,
                save_list=args.save_list,
                host=args.host,
                port=args.port,
            )
        )
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
