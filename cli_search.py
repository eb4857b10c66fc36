"""Terminal client that drives a select widget against a search endpoint."""
from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
from typing import Dict, Iterable, List

from ajax_select.config import settings
from ajax_select.widget import SelectWidget

MAX_RESULTS = 100
GREEN = "\033[92m"
RED = "\033[91m"
RESET = "\033[0m"


def parse_pairs(pairs: List[str] | None) -> Dict[str, str]:
    result: Dict[str, str] = {}
    for pair in pairs or []:
        key, _, value = pair.partition("=")
        result[key.strip()] = value.strip()
    return result


def build_widget(args: argparse.Namespace) -> SelectWidget:
    payload = {
        "id": "cli",
        "name": "cli",
        "lang": args.lang,
        "value": None,
        "config": {
            "minSearchChars": args.min_chars,
            "searchEndpoint": args.endpoint,
            "placeholder": "",
            "getVars": parse_pairs(args.get_var) or None,
            "headers": parse_pairs(args.header) or None,
        },
    }
    return SelectWidget.from_payload(payload, debounce=0)


async def perform_query(widget: SelectWidget, query: str) -> None:
    widget.on_input(query)
    await widget.settle()


def pretty_print_widget(query: str, widget: SelectWidget) -> None:
    hint = widget.hint()
    color = RED if widget.error else GREEN
    print(f"Query: {query} | results: {len(widget.results)}")
    if hint:
        print(f"  {color}{hint}{RESET}")
    for idx, label in enumerate(widget.result_labels()[:MAX_RESULTS], start=1):
        record = widget.results[idx - 1]
        print(f"  {idx:02d}. id={record.get('id')} | {label}")


async def interactive_shell(widget: SelectWidget) -> None:
    print("Interactive field search. Type 'exit' to quit.")
    while True:
        try:
            query = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            return
        if not query:
            continue
        if query.lower() in {"exit", "quit"}:
            return
        await perform_query(widget, query)
        pretty_print_widget(query, widget)


async def batch_mode(widget: SelectWidget, file_path: Path) -> None:
    with file_path.open("r", encoding="utf-8") as fh:
        for line in fh:
            query = line.strip()
            if not query:
                continue
            await perform_query(widget, query)
            pretty_print_widget(query, widget)


async def run(args: argparse.Namespace) -> None:
    widget = build_widget(args)
    try:
        if args.batch:
            await batch_mode(widget, args.batch)
        elif args.query:
            await perform_query(widget, args.query)
            pretty_print_widget(args.query, widget)
        else:
            await interactive_shell(widget)
    finally:
        await widget.aclose()


def main(argv: Iterable[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="CLI client for select field search endpoints")
    parser.add_argument("query", nargs="?", help="Query string. If omitted, starts REPL mode.")
    parser.add_argument("--endpoint", required=True, help="Search endpoint, e.g. http://localhost:8000/field/Company/search")
    parser.add_argument("--batch", type=Path, help="File with queries to execute line by line")
    parser.add_argument("--min-chars", type=int, default=settings.min_search_chars, help="Minimum query length")
    parser.add_argument("--lang", default=settings.default_locale, help="Language for messages")
    parser.add_argument("--get-var", action="append", metavar="KEY=VALUE", help="Extra query parameter")
    parser.add_argument("--header", action="append", metavar="KEY=VALUE", help="Extra request header")
    args = parser.parse_args(list(argv) if argv is not None else None)

    asyncio.run(run(args))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
