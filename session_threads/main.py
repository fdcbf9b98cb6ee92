#!/usr/bin/env python3
"""Session Threads - browse agent session logs with nested sub-agents.

Entry point for the CLI application.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.text import Text

console = Console()


def _get_source(args):
    from .sources import get_source

    source = get_source(args.source, sessions_dir=args.sessions_dir)
    if source is None:
        console.print(f"[red]Unknown source:[/] {args.source}")
        sys.exit(2)
    return source


def _load_dangers(args) -> dict:
    from .sources import load_danger_data

    if not args.dangers:
        return {}
    return load_danger_data(Path(args.dangers))


def cmd_browse(args):
    """Launch the TUI browser."""
    from .app import SessionThreadsApp
    from .cache import ProgressStore

    app = SessionThreadsApp(
        source=_get_source(args),
        session=args.session,
        store=ProgressStore(),
        dangers=_load_dangers(args),
        expand_all=args.expand_all,
    )
    app.run()


def print_view(view, depth: int = 0):
    """Print a resolved view tree with rich."""
    from .resolver import EntryItem, LoadState, NestedItem, ReadMarkerItem
    from .ui.widgets import build_entry_text

    indent = "    " * depth
    if depth:
        header = Text(f"{indent}🚀 {view.display_label}", style="bold cyan")
        stats = view.header_stats()
        if stats:
            header.append(f"  {stats}", style="dim")
        header.append("  ▼" if view.expanded else "  ▶", style="dim")
        console.print(header)
    if view.load_state == LoadState.FAILED:
        console.print(Text(f"{indent}(could not load {view.filename})", style="red"))
        return

    for item in view.items():
        if isinstance(item, EntryItem):
            text = build_entry_text(
                item.entry,
                is_read=item.is_read,
                dangers=view.dangers_for(item.entry),
                expanded=view.ambient_expanded,
            )
            if text is None:
                continue
            for line in text.split("\n"):
                console.print(Text(indent) + line)
        elif isinstance(item, NestedItem):
            print_view(item.view, depth + 1)
        elif isinstance(item, ReadMarkerItem):
            console.print(Text(f"{indent}── {item.text} ──", style="bold yellow"))


def cmd_show(args):
    """Print a session and its sub-agents without the TUI."""
    from .cache import ProgressStore
    from .resolver import ConversationView, LoadState, ViewContext

    source = _get_source(args)
    key, filename = source.resolve_log(args.session)
    context = ViewContext(
        source=source,
        spawned=source.load_spawn_registry(),
        progress=ProgressStore(),
        dangers=_load_dangers(args),
    )
    view = ConversationView(key=key, filename=filename, context=context, ambient_expanded=args.expand_all)
    view.manual_expanded = True
    asyncio.run(view.resolve())

    if not view.entries and view.load_state == LoadState.FAILED:
        console.print(f"[red]Could not load session:[/] {args.session}")
        sys.exit(1)
    print_view(view)


def cmd_list(args):
    """List sessions with read/unread counts."""
    from .cache import ProgressStore
    from .parser import message_entries, parse_log, visible_entries
    from .progress import compute_read_state
    from .sources import LogSourceError

    source = _get_source(args)
    if not source.is_available():
        console.print(f"[red]Sessions directory not found:[/] {source.get_sessions_dir()}")
        return

    store = ProgressStore()
    index = source.load_session_index()
    key_by_file = {}
    for key, record in index.items():
        filename = source.filename_for(key, record)
        if filename:
            key_by_file.setdefault(filename, key)
    spawned = {info.filename for info in source.load_spawn_registry().values()}

    for path in reversed(source.discover_log_files()):
        try:
            entries = parse_log(source.read_log(path.name))
        except LogSourceError as e:
            logging.getLogger(__name__).warning(f"Skipping {path.name}: {e}")
            continue
        key = key_by_file.get(path.name, path.stem)
        progress = store.get(key)
        state = compute_read_state(
            visible_entries(entries),
            message_entries(entries),
            progress.last_read_id if progress else None,
        )

        text = Text()
        text.append("  ↳ " if path.name in spawned else "", style="dim")
        text.append(f"{key:<48}", style="cyan")
        text.append(f" {state.total_message_count:>5} msgs", style="dim")
        if state.unread_message_count:
            text.append(f" · {state.unread_message_count} unread", style="bold yellow")
        console.print(text)


def cmd_mark(args):
    """Set a session's read watermark."""
    from .cache import ProgressStore

    store = ProgressStore()
    store.mark_read(args.key, args.entry_id)
    store.save()
    print(f"Marked {args.key} read up to {args.entry_id}")


def cmd_progress(args):
    """Manage stored read progress."""
    from .cache import ProgressStore

    store = ProgressStore()
    if args.action == "clear":
        count = len(store)
        store.clear()
        store.save()
        print(f"Cleared read progress for {count} sessions.")
    elif args.action == "info":
        print(f"Progress file: {store.path}")
        print(f"  Sessions tracked: {len(store)}")
        if store.path.exists():
            size = store.path.stat().st_size
            print(f"  Size: {size / 1024:.1f} KB")


def main():
    """Main entry point for session-threads CLI."""
    parser = argparse.ArgumentParser(
        description="Browse agent session logs with sub-agents nested inline",
        prog="session-threads",
    )
    parser.add_argument("--version", "-v", action="store_true", help="Show version")
    parser.add_argument("--verbose", action="store_true", help="Debug logging to stderr")
    parser.add_argument("--source", default="openclaw", help="Log source (default: openclaw)")
    parser.add_argument("--sessions-dir", type=Path, help="Override the sessions directory")
    parser.add_argument("--dangers", help="JSON file of danger annotations per log")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    browse_parser = subparsers.add_parser("browse", help="Launch TUI browser")
    browse_parser.add_argument("session", help="Session key or log filename")
    browse_parser.add_argument("--expand-all", "-a", action="store_true", help="Start with sub-agents expanded")

    show_parser = subparsers.add_parser("show", help="Print a session with its sub-agents")
    show_parser.add_argument("session", help="Session key or log filename")
    show_parser.add_argument("--expand-all", "-a", action="store_true", help="Load and print nested sub-agents")

    subparsers.add_parser("list", help="List sessions with unread counts")

    mark_parser = subparsers.add_parser("mark", help="Mark a session read up to an entry")
    mark_parser.add_argument("key", help="Session key")
    mark_parser.add_argument("entry_id", help="Entry id of the last read entry")

    progress_parser = subparsers.add_parser("progress", help="Manage read progress")
    progress_parser.add_argument("action", choices=["clear", "info"], help="Progress action")

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")

    if args.version:
        from . import __version__
        print(f"session-threads {__version__}")
        return

    if args.command == "show":
        cmd_show(args)
    elif args.command == "list":
        cmd_list(args)
    elif args.command == "mark":
        cmd_mark(args)
    elif args.command == "progress":
        cmd_progress(args)
    elif args.command == "browse":
        cmd_browse(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
