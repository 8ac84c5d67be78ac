from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from typing import List, NamedTuple, Optional

from tqdm import tqdm

from bible_reader.annotations.store import AnnotationKind, AnnotationStore
from bible_reader.config import load_config
from bible_reader.data.loader import Corpus
from bible_reader.data.verse_index import VerseIndex
from bible_reader.narration.console import ConsoleNarrator, ConsoleNarratorOptions
from bible_reader.playback.coordinator import PlaybackCoordinator
from bible_reader.playback.scheduler import SerialScheduler
from bible_reader.session import ReaderSession
from bible_reader.utils.address import ChapterAddress, InvalidAddressError, VerseAddress


class _Opened(NamedTuple):
    session: ReaderSession
    corpus: Corpus
    index: VerseIndex
    store: AnnotationStore


def _open_session(args: argparse.Namespace) -> _Opened:
    cfg = load_config(args.config)
    if args.corpus:
        cfg = replace(cfg, corpus_path=args.corpus)
    session = ReaderSession.open(cfg)
    if session.corpus is None or session.index is None or session.store is None:
        raise SystemExit(f"Error: {session.loading_error}")
    return _Opened(session, session.corpus, session.index, session.store)


def _parse_ref(corpus: Corpus, ref: str) -> VerseAddress:
    try:
        return corpus.parse_reference(ref)
    except InvalidAddressError as e:
        raise SystemExit(f"Invalid reference {ref!r}: {e}")


def _warn_persistence(store: AnnotationStore) -> None:
    if store.persistence_error:
        print(f"Warning: annotations not saved ({store.persistence_error})", file=sys.stderr)


def cmd_search(args: argparse.Namespace) -> int:
    opened = _open_session(args)
    result = opened.session.search_engine.search(" ".join(args.query), opened.index)
    if result.insufficient:
        print("Enter at least two words to search.")
        return 1
    if not result.entries:
        print("No results found.")
        return 0

    shown = result.entries if args.limit <= 0 else result.entries[: args.limit]
    for e in shown:
        print(f"{e.ref}  {e.text}")
    if len(shown) < len(result.entries):
        print(f"... {len(result.entries) - len(shown)} more")
    return 0


def cmd_random(args: argparse.Namespace) -> int:
    index = _open_session(args).index
    for _ in range(max(1, int(args.count))):
        entry = index.random_entry()
        if entry is None:
            print("No verses available.")
            return 1
        print(entry.share_text)
        print()
    return 0


def cmd_resolve(args: argparse.Namespace) -> int:
    opened = _open_session(args)
    address = _parse_ref(opened.corpus, args.ref)
    for sel in opened.session.resolver.resolve(address, opened.corpus):
        print(f"{sel.level:<8} {sel.title}")
    return 0


def _parse_chapter(corpus: Corpus, ref: str) -> ChapterAddress:
    try:
        return corpus.parse_chapter_reference(ref)
    except InvalidAddressError as e:
        raise SystemExit(f"Invalid chapter {ref!r}: {e}")


def cmd_show(args: argparse.Namespace) -> int:
    corpus = _open_session(args).corpus
    chapter = _parse_chapter(corpus, args.ref)
    if args.next:
        chapter = corpus.next_chapter(chapter)
    elif args.prev:
        chapter = corpus.previous_chapter(chapter)

    print(corpus.chapter_title(chapter))
    verses = corpus.chapter_verses(chapter)
    if not verses:
        print("(no verses)")
    for n, text in enumerate(verses, start=1):
        print(f"{n:>3}  {text}")
    return 0


def cmd_annotate(args: argparse.Namespace) -> int:
    opened = _open_session(args)
    address = _parse_ref(opened.corpus, args.ref)
    if args.kind == AnnotationKind.NOTE:
        item = opened.store.upsert(args.kind, address, custom_text=args.text)
    else:
        item = opened.store.add(args.kind, address)
    print(f"{item.kind}: {item.ref}  {item.display_text}")
    _warn_persistence(opened.store)
    return 0


def cmd_toggle(args: argparse.Namespace) -> int:
    opened = _open_session(args)
    address = _parse_ref(opened.corpus, args.ref)
    item = opened.store.toggle(args.kind, address)
    if item is None:
        print(f"Removed from {args.kind}s")
    else:
        print(f"Added to {args.kind}s")
    _warn_persistence(opened.store)
    return 0


def cmd_remove(args: argparse.Namespace) -> int:
    opened = _open_session(args)
    address = _parse_ref(opened.corpus, args.ref)
    opened.store.remove(args.kind, address)
    _warn_persistence(opened.store)
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    store = _open_session(args).store
    items = sorted(store.list_by_kind(args.kind), key=lambda a: a.last_modified, reverse=True)
    if args.json:
        print(json.dumps([a.to_dict() for a in items], ensure_ascii=False, indent=2))
        return 0
    if not items:
        print(f"No {args.kind}s added yet.")
        return 0
    for a in items:
        stamp = a.last_modified.astimezone().strftime("%b %d, %Y, %I:%M %p")
        print(f"{a.ref}  [{stamp}]")
        print(f"    {a.display_text}")
    return 0


def cmd_read(args: argparse.Namespace) -> int:
    session, corpus, index, _ = _open_session(args)
    address = _parse_ref(corpus, args.ref)

    scheduler = SerialScheduler()
    narrator = ConsoleNarrator(
        scheduler,
        ConsoleNarratorOptions(mode=args.narrator_mode),
        write=tqdm.write,
    )
    coordinator = PlaybackCoordinator(corpus, narrator, session.config.playback, scheduler=scheduler)

    remaining = len(index) - (index.position(address) or 0)
    total = min(remaining, args.limit) if args.limit > 0 else remaining

    with tqdm(total=total, unit="verse", disable=args.no_progress) as bar:

        def on_position(pos: Optional[VerseAddress]) -> None:
            if pos is None:
                return
            if args.limit > 0 and coordinator.spoken_count >= args.limit:
                coordinator.stop()
                return
            bar.set_description(corpus.reference(pos))

        coordinator.add_listener(on_position)
        coordinator.start(address)
        try:
            while scheduler.run_once():
                bar.update(coordinator.spoken_count - bar.n)
        except KeyboardInterrupt:
            coordinator.stop()
            scheduler.cancel_all()
        bar.update(coordinator.spoken_count - bar.n)
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="bible-reader", description="Browse, annotate, search and read the Bible aloud.")
    p.add_argument("--config", default=None, help="Path to a reader config.yaml.")
    p.add_argument("--corpus", default=None, help="Override the corpus JSON path from the config.")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    sub = p.add_subparsers(dest="cmd", required=True)

    s_search = sub.add_parser("search", help="Find verses containing every word of a query.")
    s_search.add_argument("query", nargs="+", help="Two or more words.")
    s_search.add_argument("--limit", type=int, default=50, help="Maximum results to print (0 for all).")
    s_search.set_defaults(func=cmd_search)

    s_random = sub.add_parser("random", help="Print a random verse.")
    s_random.add_argument("--count", type=int, default=1, help="How many verses to print.")
    s_random.set_defaults(func=cmd_random)

    s_resolve = sub.add_parser("resolve", help="Show the book/chapter/verse selections for a reference.")
    s_resolve.add_argument("ref", help='Reference, e.g. "John 3:16".')
    s_resolve.set_defaults(func=cmd_resolve)

    s_show = sub.add_parser("show", help="Print every verse of a chapter.")
    s_show.add_argument("ref", help='Chapter, e.g. "Psalms 23".')
    step = s_show.add_mutually_exclusive_group()
    step.add_argument("--next", action="store_true", help="Show the chapter after this one.")
    step.add_argument("--prev", action="store_true", help="Show the chapter before this one.")
    s_show.set_defaults(func=cmd_show)

    kinds = AnnotationKind.all_kinds()

    s_ann = sub.add_parser("annotate", help="Add a bookmark/favorite or write a note.")
    s_ann.add_argument("kind", choices=kinds)
    s_ann.add_argument("ref", help='Reference, e.g. "John 3:16".')
    s_ann.add_argument("--text", default=None, help="Note body (notes only).")
    s_ann.set_defaults(func=cmd_annotate)

    s_toggle = sub.add_parser("toggle", help="Add or remove a bookmark/favorite.")
    s_toggle.add_argument("kind", choices=[AnnotationKind.BOOKMARK, AnnotationKind.FAVORITE])
    s_toggle.add_argument("ref")
    s_toggle.set_defaults(func=cmd_toggle)

    s_remove = sub.add_parser("remove", help="Remove an annotation.")
    s_remove.add_argument("kind", choices=kinds)
    s_remove.add_argument("ref")
    s_remove.set_defaults(func=cmd_remove)

    s_list = sub.add_parser("list", help="List annotations of one kind, newest first.")
    s_list.add_argument("kind", choices=kinds)
    s_list.add_argument("--json", action="store_true", help="Print JSON instead of text.")
    s_list.set_defaults(func=cmd_list)

    s_read = sub.add_parser("read", help="Read aloud from a reference onward.")
    s_read.add_argument("ref", help='Starting reference, e.g. "Genesis 1:1".')
    s_read.add_argument("--limit", type=int, default=0, help="Stop after this many verses (0 for no limit).")
    s_read.add_argument("--narrator-mode", choices=["echo", "silent", "fail"], default="echo")
    s_read.add_argument("--no-progress", action="store_true", help="Hide the progress bar.")
    s_read.set_defaults(func=cmd_read)

    return p


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
